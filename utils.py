# utils.py
"""
Utility helpers: JSON loading, report saving, and console output.

- Uses Rich for colorful, wrapped tables in the terminal.
- Saves a JSON report per run.
"""

from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
import json
import os
from json import JSONDecodeError

from rich.console import Console
from rich.table import Table
from rich.text import Text

from models import Finding, Status

_console = Console()

_STATUS_STYLES = {
    Status.OK: "green",
    Status.FAIL: "bold red",
    Status.UNKNOWN: "bold yellow",
    Status.INFO: "cyan",
}


def load_json_file(path: str) -> Any:
    """
    Load JSON from a file and return the parsed value.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Input JSON file not found: {path}.")
    try:
        with open(path, "r", encoding="utf-8-sig") as fh:
            return json.load(fh)
    except JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {path}: {e.msg} (line {e.lineno} column {e.colno})") from e


def ensure_reports_dir(path: str = "reports") -> str:
    os.makedirs(path, exist_ok=True)
    return path


def findings_to_json(findings: Iterable[Finding]) -> str:
    return json.dumps([f.to_dict() for f in findings], indent=2)


def summarize(findings: Iterable[Finding]) -> Dict[str, int]:
    counts = Counter(f.status.value for f in findings)
    return {status.value: counts.get(status.value, 0) for status in Status}


def save_report(findings: List[Finding], rule: str, extra: Optional[dict] = None, out_dir: str = "reports") -> str:
    """
    Save a JSON report and return its path.
    """
    out_dir = ensure_reports_dir(out_dir)
    now = datetime.now(timezone.utc).replace(microsecond=0, tzinfo=None).isoformat() + "Z"
    report = {
        "scan_time": now,
        "rule": rule,
        "summary": {"findings_count": len(findings), "by_status": summarize(findings)},
        "findings": [f.to_dict() for f in findings],
    }
    if extra:
        report["extra"] = extra

    base_ts = now.replace(":", "-")
    json_path = os.path.join(out_dir, f"scan-{base_ts}-{rule}.json")
    with open(json_path, "w", encoding="utf-8") as fh:
        json.dump(report, fh, indent=2, default=str)
    return json_path


# --- Console printing with color/wrapping ---

def _rich_status_text(status: Status) -> Text:
    return Text(status.value, style=_STATUS_STYLES.get(status, ""))


def print_summary_and_report_path(findings: List[Finding], report_path: Optional[str] = None,
                                  show_top: int = 5, print_full_table: bool = False,
                                  console: Optional[Console] = None):
    """
    Print per-status counts and a colorful table of findings (failures first).
    """
    console = console or _console
    counts = summarize(findings)
    console.print("\nScan summary:")
    console.print(f"- Total findings: {len(findings)}")
    for status, count in counts.items():
        if count:
            console.print(f"- {status}: {count}")

    if findings:
        ordered = sorted(findings, key=lambda f: f.status != Status.FAIL)
        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("Status", justify="center")
        table.add_column("Region", style="magenta")
        table.add_column("Resource", style="cyan", overflow="fold")
        table.add_column("Message", overflow="fold")
        for f in (ordered if print_full_table else ordered[:show_top]):
            table.add_row(_rich_status_text(f.status), f.region, str(f.resource or ""), f.message)
        console.print(table)

    if report_path:
        console.print(f"\nSaved report: {report_path}\n")
