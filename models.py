# models.py
"""
Data models used by the scanner.

- Keep simple, serializable dataclasses for rule metadata, cached API data and findings.
- Everything a rule hands back is frozen: findings are never mutated once produced.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from botocore.utils import parse_timestamp


class Status(str, Enum):
    """Outcome of one evaluated unit (a region or a resource)."""

    OK = "OK"
    FAIL = "FAIL"
    UNKNOWN = "UNKNOWN"
    INFO = "INFO"

    @property
    def code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES = {Status.OK: 0, Status.FAIL: 2, Status.UNKNOWN: 3, Status.INFO: 4}


@dataclass(frozen=True)
class SettingSpec:
    """Declared shape of one operator setting."""
    name: str
    description: str
    regex: str
    default: Any


@dataclass(frozen=True)
class RuleDefinition:
    """
    Static metadata for a rule.

    Fields:
    - title, category, domain: how the rule is grouped in reports
    - description / more_info / recommended_action / link: human-readable guidance
    - apis: upstream calls ("Service:operation") that must be cached before the rule runs
    - settings: setting key -> SettingSpec
    """
    title: str
    category: str
    domain: str
    description: str
    more_info: str = ""
    recommended_action: str = ""
    link: str = ""
    apis: Tuple[str, ...] = ()
    settings: Dict[str, SettingSpec] = field(default_factory=dict)


@dataclass(frozen=True)
class CacheEntry:
    """
    One cached API call result.

    Exactly one of error/data is meaningful: a failed upstream call carries
    `error`, a successful one carries `data`.
    """
    error: Optional[Any] = None
    data: Optional[Any] = None

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "CacheEntry":
        error = raw.get("err")
        if error is None:
            error = raw.get("error")
        return cls(error=error, data=raw.get("data"))

    @property
    def failed(self) -> bool:
        return bool(self.error) or self.data is None


@dataclass(frozen=True)
class SessionRecord:
    """
    One active Session Manager session as returned by ssm:DescribeSessions.

    - target: instance or task the session is attached to (opaque identifier)
    - start_date: when the session started
    - max_session_duration: the session's own reported maximum, in minutes
    """
    target: str
    start_date: datetime
    max_session_duration: Optional[int] = None

    @classmethod
    def from_api(cls, item: Dict[str, Any]) -> "SessionRecord":
        """
        Build a record from a DescribeSessions item.

        Raises ValueError when Target or StartDate is missing or unusable.
        """
        if not isinstance(item, dict):
            raise ValueError(f"unexpected session entry: {item!r}")
        target = item.get("Target")
        if not target:
            raise ValueError(f"session {item.get('SessionId', '?')} has no Target")
        if not isinstance(target, str):
            raise ValueError(f"session {item.get('SessionId', '?')} has a non-string Target {target!r}")
        start = item.get("StartDate")
        if start is None:
            raise ValueError(f"session for {target} has no StartDate")
        if not isinstance(start, datetime):
            try:
                start = parse_timestamp(start)
            except (ValueError, RuntimeError, OverflowError, OSError) as e:
                raise ValueError(f"session for {target} has an unusable StartDate {start!r}: {e}") from e
        return cls(
            target=str(target),
            start_date=start,
            max_session_duration=_optional_int(item.get("MaxSessionDuration")),
        )


def _optional_int(value: Any) -> Optional[int]:
    # DescribeSessions reports MaxSessionDuration as a string
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class ThresholdPass:
    """Evidence for a session within policy: cites the configured threshold."""
    elapsed_minutes: int
    threshold: Union[int, float]


@dataclass(frozen=True)
class ThresholdFail:
    """Evidence for a session over policy: cites the session's own reported maximum."""
    elapsed_minutes: int
    record_max_duration: Optional[int]


@dataclass(frozen=True)
class Finding:
    """
    Represents a single compliance result.

    Fields:
    - status: OK / FAIL / UNKNOWN / INFO
    - message: short human-readable explanation
    - region: region the result belongs to
    - resource: canonical identifier (ARN-like) for resource-level results, None for region-level ones
    - evidence: structured detail behind a threshold decision, when there is one
    """
    status: Status
    message: str
    region: str
    resource: Optional[str] = None
    evidence: Optional[Union[ThresholdPass, ThresholdFail]] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "status": self.status.value,
            "code": self.status.code,
            "message": self.message,
            "region": self.region,
            "resource": self.resource,
        }
        if self.evidence is not None:
            out["evidence"] = {"kind": type(self.evidence).__name__, **vars(self.evidence)}
        return out


@dataclass(frozen=True)
class RunResult:
    """
    Everything a rule run produces.

    - findings: ordered findings, region-level status before resource-level results
    - source: the cache nodes the rule read, keyed by the same nested path
    - cache: the untouched cache the rule ran against
    """
    findings: Tuple[Finding, ...]
    source: Dict[str, Any]
    cache: Any = None
