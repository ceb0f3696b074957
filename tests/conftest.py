# tests/conftest.py
"""
Shared fixtures: a fixed evaluation instant and a builder for cache snapshots.
"""

from datetime import datetime, timedelta, timezone

import pytest

ACCOUNT = "123456789012"
NOW = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def minutes_ago(minutes, seconds=0):
    return NOW - timedelta(minutes=minutes, seconds=seconds)


def session(target, started, max_duration="60", session_id=None):
    return {
        "SessionId": session_id or f"user-{target}",
        "Target": target,
        "Status": "Connected",
        "StartDate": started,
        "MaxSessionDuration": max_duration,
    }


def make_cache(regions, account=ACCOUNT, account_region="us-east-1"):
    """
    Build a cache snapshot. `regions` maps region -> raw describeSessions node.
    """
    cache = {"ssm": {"describeSessions": dict(regions)}}
    if account is not None:
        cache["sts"] = {"getCallerIdentity": {account_region: {"data": account}}}
    return cache


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def one_region():
    return {"regions": ["us-east-1"]}


@pytest.fixture(autouse=True)
def no_region_env(monkeypatch):
    monkeypatch.delenv("AWS_REGION", raising=False)
