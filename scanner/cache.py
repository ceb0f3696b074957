# scanner/cache.py
"""
Read-only access to the collected API cache.

The cache is a nested mapping keyed by service, operation, region and
optional sub-keys, e.g. cache["ssm"]["describeSessions"]["us-east-1"].
Each leaf is {"err": ..., "data": ...} as written by the collector.
Nothing in this module writes to the cache.
"""

from typing import Any, Dict, Mapping, Optional, Sequence

from models import CacheEntry


def _walk(cache: Any, path: Sequence[str]) -> Optional[Any]:
    node = cache
    for segment in path:
        if not isinstance(node, Mapping) or segment not in node:
            return None
        node = node[segment]
    return node


def lookup(cache: Any, path: Sequence[str]) -> Optional[CacheEntry]:
    """
    Return the CacheEntry stored at `path`, or None if it was never collected.
    """
    node = _walk(cache, path)
    if node is None:
        return None
    if not isinstance(node, Mapping):
        # A bare value means the path already points below the entry (e.g. ".../data")
        return CacheEntry(data=node)
    return CacheEntry.from_raw(node)


def add_source(cache: Any, source: Dict[str, Any], path: Sequence[str]) -> Optional[Any]:
    """
    Look up `path` and record the raw node in `source` under the same nested path.

    Returns the raw node (or None when absent). `source` is the caller's own
    provenance mapping; the cache is not modified.
    """
    node = _walk(cache, path)
    if node is None:
        return None
    target = source
    for segment in path[:-1]:
        target = target.setdefault(segment, {})
    target[path[-1]] = node
    return node


def merge_sources(into: Dict[str, Any], other: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Deep-merge one provenance mapping into another (used after region tasks join).
    """
    for key, value in other.items():
        existing = into.get(key)
        if isinstance(existing, dict) and isinstance(value, Mapping):
            merge_sources(existing, value)
        else:
            into[key] = value
    return into


def describe_error(entry: Optional[CacheEntry]) -> str:
    """
    Render an upstream error as text for a finding message.
    """
    if entry is None:
        return "No data returned"
    err = entry.error
    if not err:
        return "No data returned" if entry.data is None else ""
    if isinstance(err, str):
        return err
    if isinstance(err, Mapping):
        for key in ("message", "Message", "code", "Code"):
            if err.get(key):
                return str(err[key])
        return str(dict(err))
    return str(err)
