# tests/test_cache.py
"""
Tests for cache lookups, provenance recording and error rendering.
"""

import copy

from models import CacheEntry
from scanner.cache import add_source, describe_error, lookup, merge_sources

CACHE = {
    "ssm": {
        "describeSessions": {
            "us-east-1": {"data": [{"Target": "i-1"}]},
            "eu-west-1": {"err": "AccessDenied"},
        }
    }
}


def test_lookup_absent_path_is_none():
    assert lookup(CACHE, ["ssm", "describeSessions", "sa-east-1"]) is None
    assert lookup(CACHE, ["ec2", "describeInstances", "us-east-1"]) is None
    assert lookup({}, ["ssm"]) is None


def test_lookup_entries():
    ok = lookup(CACHE, ["ssm", "describeSessions", "us-east-1"])
    assert ok == CacheEntry(data=[{"Target": "i-1"}])
    assert not ok.failed

    bad = lookup(CACHE, ["ssm", "describeSessions", "eu-west-1"])
    assert bad.error == "AccessDenied"
    assert bad.failed


def test_lookup_empty_data_is_not_failed():
    entry = lookup({"a": {"data": []}}, ["a"])
    assert entry.data == []
    assert not entry.failed


def test_add_source_records_without_mutating_cache():
    snapshot = copy.deepcopy(CACHE)
    source = {}
    node = add_source(CACHE, source, ["ssm", "describeSessions", "eu-west-1"])
    assert node == {"err": "AccessDenied"}
    assert source == {"ssm": {"describeSessions": {"eu-west-1": {"err": "AccessDenied"}}}}
    assert add_source(CACHE, source, ["ssm", "describeSessions", "sa-east-1"]) is None
    assert CACHE == snapshot


def test_merge_sources_deep_merges_fragments():
    into = {"sts": {"getCallerIdentity": {"us-east-1": {"data": "1"}}}}
    merge_sources(into, {"ssm": {"describeSessions": {"us-east-1": {"data": []}}}})
    merge_sources(into, {"ssm": {"describeSessions": {"eu-west-1": {"err": "x"}}}})
    assert set(into["ssm"]["describeSessions"]) == {"us-east-1", "eu-west-1"}
    assert into["sts"]["getCallerIdentity"]["us-east-1"]["data"] == "1"


def test_describe_error_variants():
    assert describe_error(CacheEntry(error="AccessDenied")) == "AccessDenied"
    assert describe_error(CacheEntry(error={"message": "denied", "code": "AccessDenied"})) == "denied"
    assert describe_error(CacheEntry(error={"Code": "Throttling"})) == "Throttling"
    assert describe_error(CacheEntry(error=RuntimeError("timed out"))) == "timed out"
    assert describe_error(CacheEntry()) == "No data returned"
    assert describe_error(None) == "No data returned"
