"""
Central configuration and tunable constants.

- Default region, partition and worker count can be overridden by CLI args or environment variables.
- Partition defaults are centralized so every rule resolves the account region the same way.
"""

# Partitions and the region used for account-wide calls (e.g. sts:GetCallerIdentity)
DEFAULT_PARTITION = "aws"
GOVCLOUD_PARTITION = "aws-us-gov"
CHINA_PARTITION = "aws-cn"

DEFAULT_AWS_REGION = "us-east-1"
PARTITION_DEFAULT_REGIONS = {
    DEFAULT_PARTITION: DEFAULT_AWS_REGION,
    GOVCLOUD_PARTITION: "us-gov-west-1",
    CHINA_PARTITION: "cn-north-1",
}

# Region fan-out: one task per region, at most this many at once
DEFAULT_MAX_WORKERS = 8

# When False, a setting that fails its declared regex is still parsed and used
STRICT_SETTINGS_VALIDATION = False

DEFAULT_REPORT_DIR = "reports"
