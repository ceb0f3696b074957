# scanner/settings.py
"""
Settings resolution: turn an operator-supplied value into a numeric threshold.

- Missing values fall back to the rule's declared default.
- String values are checked against the declared regex. By default a mismatch
  is only logged and the value is still parsed; strict mode rejects it.
- Values that cannot be parsed become NaN, which rules treat as a violation.
"""

import logging
import math
import re
from typing import Any, Mapping, Union

from config import STRICT_SETTINGS_VALIDATION
from models import SettingSpec

logger = logging.getLogger(__name__)

Threshold = Union[int, float]

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class SettingsError(ValueError):
    """A setting value failed validation in strict mode."""


def parse_int(text: str) -> Threshold:
    """
    Parse the leading integer of `text` ("12abc" -> 12); NaN when there is none.
    """
    match = _LEADING_INT.match(text)
    if not match:
        return math.nan
    return int(match.group(1))


def is_nan(value: Any) -> bool:
    return isinstance(value, float) and math.isnan(value)


def resolve_threshold(settings: Mapping[str, Any], key: str, spec: SettingSpec,
                      strict: bool = STRICT_SETTINGS_VALIDATION) -> Threshold:
    """
    Resolve settings[key] to an int, 0 (no enforcement) or NaN.
    """
    raw = settings.get(key)
    # Only a missing value takes the default; an explicit 0 disables enforcement
    # (unlike `value || default`, where 0 would also fall back to the default)
    if raw is None or raw == "":
        raw = spec.default

    if isinstance(raw, bool):
        logger.warning("Setting %s: boolean value %r is not a number", key, raw)
        return math.nan
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if math.isfinite(raw) else math.nan

    text = str(raw)
    if not re.match(spec.regex, text):
        if strict:
            raise SettingsError(f"{spec.name} ({key}): {text!r} does not match {spec.regex}")
        logger.warning("Setting %s=%r does not match %s; using parsed value anyway", key, text, spec.regex)
    return parse_int(text)
