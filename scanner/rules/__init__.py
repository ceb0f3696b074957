"""
Rule catalogue: rule id -> Rule class.
"""

from typing import Dict, Type

from scanner.engine import Rule
from scanner.rules.ssm_session_duration import SSMSessionDuration

RULES: Dict[str, Type[Rule]] = {
    "ssmSessionDuration": SSMSessionDuration,
}


def get_rule(rule_id: str, **kwargs) -> Rule:
    """
    Instantiate a rule by id; raises KeyError naming the known ids when unknown.
    """
    try:
        rule_cls = RULES[rule_id]
    except KeyError:
        raise KeyError(f"Unknown rule {rule_id!r}; known rules: {', '.join(sorted(RULES))}") from None
    return rule_cls(**kwargs)
