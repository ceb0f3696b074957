# scanner/helpers.py
"""
Shared run-context helpers: partition, regions, account id, time and ARNs.

- Region lists come from botocore's bundled endpoint data, so no AWS call is made.
- Operators can pin an explicit region list with settings["regions"].
"""

import logging
import math
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

import boto3

from config import (
    CHINA_PARTITION,
    DEFAULT_AWS_REGION,
    DEFAULT_PARTITION,
    GOVCLOUD_PARTITION,
    PARTITION_DEFAULT_REGIONS,
)
from scanner.cache import add_source

logger = logging.getLogger(__name__)


def default_partition(settings: Mapping[str, Any]) -> str:
    if settings.get("govcloud"):
        return GOVCLOUD_PARTITION
    if settings.get("china"):
        return CHINA_PARTITION
    return DEFAULT_PARTITION


def default_region(settings: Mapping[str, Any]) -> str:
    """
    Region used for account-wide calls in the selected partition.

    settings["account_region"] (the --region flag) wins; in the commercial
    partition AWS_REGION then overrides the config default.
    """
    if settings.get("account_region"):
        return settings["account_region"]
    partition = default_partition(settings)
    if partition == DEFAULT_PARTITION and os.environ.get("AWS_REGION"):
        return os.environ["AWS_REGION"]
    return PARTITION_DEFAULT_REGIONS.get(partition, DEFAULT_AWS_REGION)


def regions(settings: Mapping[str, Any], service: str) -> List[str]:
    """
    Regions a rule for `service` should evaluate.

    settings["regions"] (a list or comma-separated string) wins; otherwise every
    region botocore knows the service in, for the selected partition.
    """
    pinned = settings.get("regions")
    if pinned:
        if isinstance(pinned, str):
            pinned = [r.strip() for r in pinned.split(",")]
        return [r for r in pinned if r]
    partition = default_partition(settings)
    available = boto3.session.Session().get_available_regions(service, partition_name=partition)
    if not available:
        logger.warning("No known regions for %s in partition %s; using %s",
                       service, partition, default_region(settings))
        return [default_region(settings)]
    return sorted(available)


def account_id(cache: Any, source: Dict[str, Any], region: str) -> Optional[str]:
    """
    Account id from the cached sts:GetCallerIdentity result, or None if not collected.
    """
    data = add_source(cache, source, ["sts", "getCallerIdentity", region, "data"])
    if isinstance(data, Mapping):
        data = data.get("Account")
    return str(data) if data else None


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def minutes_between(first: datetime, second: datetime) -> int:
    """
    Whole minutes between two instants (floor of the absolute difference).
    Naive datetimes are treated as UTC.
    """
    delta = abs((_as_utc(first) - _as_utc(second)).total_seconds())
    return int(math.floor(delta / 60))


def resource_arn(partition: str, region: str, account: Optional[str], target: str) -> str:
    return f"arn:{partition}:ec2:{region}:{account or ''}:/instance/{target}"
