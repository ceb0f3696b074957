# tests/test_reports.py
"""
Report and CLI tests.

- Verifies that the JSON report is created and contains expected content.
- Runs the CLI end to end against a cache file.
- Uses tmp_path to isolate report outputs.
"""

import json
import os
from datetime import datetime, timedelta, timezone

import pytest
from rich.console import Console

import main
from models import Finding, Status, ThresholdFail
from utils import findings_to_json, load_json_file, print_summary_and_report_path, save_report


def _findings():
    return [
        Finding(Status.OK, "No Active SSM sessions found", "eu-west-1"),
        Finding(Status.FAIL, "SSM Session duration length is 10 minutes", "us-east-1",
                resource="arn:aws:ec2:us-east-1:123456789012:/instance/i-2",
                evidence=ThresholdFail(elapsed_minutes=10, record_max_duration=60)),
    ]


def test_save_report(tmp_path):
    path = save_report(_findings(), rule="ssmSessionDuration", extra={"source": "test"}, out_dir=str(tmp_path))
    assert os.path.exists(path)

    with open(path, "r", encoding="utf-8") as fh:
        report = json.load(fh)
    assert report["rule"] == "ssmSessionDuration"
    assert report["summary"]["findings_count"] == 2
    assert report["summary"]["by_status"] == {"OK": 1, "FAIL": 1, "UNKNOWN": 0, "INFO": 0}
    failed = report["findings"][1]
    assert failed["code"] == 2
    assert failed["evidence"] == {"kind": "ThresholdFail", "elapsed_minutes": 10, "record_max_duration": 60}


def test_findings_to_json():
    data = json.loads(findings_to_json(_findings()))
    assert data[0]["resource"] is None
    assert data[1]["status"] == "FAIL"


def test_load_json_file_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_json_file(str(tmp_path / "missing.json"))
    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    with pytest.raises(ValueError, match="line 1"):
        load_json_file(str(bad))


def test_console_summary_lists_failures_first():
    console = Console(record=True, width=200)
    print_summary_and_report_path(_findings(), "reports/x.json", console=console)
    text = console.export_text()
    assert "Total findings: 2" in text
    assert text.index("i-2") < text.index("No Active SSM")
    assert "reports/x.json" in text


def test_cli_end_to_end(tmp_path):
    started = (datetime.now(timezone.utc) - timedelta(minutes=30)).isoformat()
    cache = {
        "sts": {"getCallerIdentity": {"us-east-1": {"data": "123456789012"}}},
        "ssm": {"describeSessions": {
            "us-east-1": {"data": [{"Target": "i-1", "StartDate": started, "MaxSessionDuration": "20"}]},
            "eu-west-1": {"err": "AccessDenied"},
        }},
    }
    cache_path = tmp_path / "cache.json"
    cache_path.write_text(json.dumps(cache), encoding="utf-8")
    out_dir = tmp_path / "reports"

    main.main([
        "--cache", str(cache_path),
        "--regions", "us-east-1,eu-west-1",
        "--setting", "ssm_session_max_duration=10",
        "--report-dir", str(out_dir),
    ])

    reports = list(out_dir.glob("scan-*-ssmSessionDuration.json"))
    assert len(reports) == 1
    report = json.loads(reports[0].read_text(encoding="utf-8"))
    statuses = [(f["region"], f["status"]) for f in report["findings"]]
    assert statuses == [("us-east-1", "FAIL"), ("eu-west-1", "UNKNOWN")]
    assert "20 minutes" in report["findings"][0]["message"]


def test_cli_rejects_bad_setting(tmp_path):
    cache_path = tmp_path / "cache.json"
    cache_path.write_text("{}", encoding="utf-8")
    with pytest.raises(SystemExit):
        main.main(["--cache", str(cache_path), "--setting", "no-equals-sign"])
    with pytest.raises(SystemExit, match="does not match"):
        main.main(["--cache", str(cache_path), "--regions", "us-east-1", "--strict-settings",
                   "--setting", "ssm_session_max_duration=9999", "--report-dir", str(tmp_path)])


def test_resolve_max_workers(monkeypatch):
    monkeypatch.delenv("SCANNER_MAX_WORKERS", raising=False)
    assert main.resolve_max_workers() == main.DEFAULT_MAX_WORKERS
    monkeypatch.setenv("SCANNER_MAX_WORKERS", "3")
    assert main.resolve_max_workers() == 3
    assert main.resolve_max_workers(5) == 5
