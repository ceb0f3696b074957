# main.py
"""
CLI entrypoint for the scanner.

- Runs one rule against a JSON cache of previously collected AWS API results.
- Operator settings are passed as --setting KEY=VALUE and reach the rule unchanged.
- Produces a JSON report and prints a colorful summary table.
"""

import argparse
import logging
import os

from config import DEFAULT_MAX_WORKERS, DEFAULT_REPORT_DIR, STRICT_SETTINGS_VALIDATION
from scanner.rules import RULES, get_rule
from scanner.settings import SettingsError
from utils import load_json_file, save_report, print_summary_and_report_path

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("cloud_scanner")


def build_settings(args) -> dict:
    """
    Flatten CLI flags into the settings mapping a rule receives.
    """
    settings = {}
    for pair in args.setting or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise SystemExit(f"--setting expects KEY=VALUE, got {pair!r}")
        settings[key.strip()] = value
    if args.regions:
        settings["regions"] = args.regions
    if args.region:
        settings["account_region"] = args.region
    if args.govcloud:
        settings["govcloud"] = True
    if args.china:
        settings["china"] = True
    return settings


def resolve_max_workers(cli_value=None) -> int:
    # CLI -> env -> config default
    value = cli_value or os.environ.get("SCANNER_MAX_WORKERS")
    if not value:
        return DEFAULT_MAX_WORKERS
    try:
        return max(1, int(value))
    except ValueError:
        raise SystemExit(f"Invalid worker count: {value!r}")


def run(cache_path: str, rule_id: str, settings: dict, report_dir: str = DEFAULT_REPORT_DIR,
        print_table: bool = False, max_workers: int = DEFAULT_MAX_WORKERS,
        strict_settings: bool = STRICT_SETTINGS_VALIDATION):
    """
    Load the cache, evaluate the rule and write the report.
    """
    logger.info("Running %s against cache file: %s", rule_id, cache_path)
    try:
        cache = load_json_file(cache_path)
        rule = get_rule(rule_id, max_workers=max_workers, strict_settings=strict_settings)
        result = rule.run(cache, settings)
    except (FileNotFoundError, SettingsError, ValueError, KeyError) as e:
        raise SystemExit(str(e))

    report_path = save_report(
        list(result.findings),
        rule=rule_id,
        extra={"cache_file": cache_path, "title": rule.definition.title},
        out_dir=report_dir,
    )
    print_summary_and_report_path(list(result.findings), report_path, print_full_table=print_table)
    return result


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="Cloud configuration compliance scanner (cached API results)."
    )
    p.add_argument(
        "--cache",
        required=True,
        help="Path to the JSON cache of collected API results",
    )
    p.add_argument(
        "--rule",
        default="ssmSessionDuration",
        choices=sorted(RULES),
        help="Rule to evaluate (default: ssmSessionDuration)",
    )
    p.add_argument(
        "--setting",
        action="append",
        metavar="KEY=VALUE",
        help="Rule setting, e.g. ssm_session_max_duration=60 (repeatable)",
    )
    p.add_argument(
        "--regions",
        help="Comma-separated regions to evaluate (default: all regions for the service)",
    )
    p.add_argument(
        "--region",
        help="Region holding account-wide results such as sts:GetCallerIdentity (env AWS_REGION, default: partition default)",
    )
    partition = p.add_mutually_exclusive_group()
    partition.add_argument("--govcloud", action="store_true", help="Use the aws-us-gov partition")
    partition.add_argument("--china", action="store_true", help="Use the aws-cn partition")
    p.add_argument(
        "--max-workers",
        type=int,
        help=f"Regions evaluated in parallel (env SCANNER_MAX_WORKERS, default: {DEFAULT_MAX_WORKERS})",
    )
    p.add_argument(
        "--strict-settings",
        action="store_true",
        default=STRICT_SETTINGS_VALIDATION,
        help="Reject settings that do not match their declared pattern",
    )
    p.add_argument(
        "--report-dir",
        default=DEFAULT_REPORT_DIR,
        help=f"Directory to save reports (default: {DEFAULT_REPORT_DIR})",
    )
    p.add_argument(
        "--print-table",
        action="store_true",
        help="Print full findings table to stdout",
    )
    p.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    run(
        args.cache,
        args.rule,
        build_settings(args),
        report_dir=args.report_dir,
        print_table=args.print_table,
        max_workers=resolve_max_workers(args.max_workers),
        strict_settings=args.strict_settings,
    )


if __name__ == "__main__":
    main()
