# scanner/rules/ssm_session_duration.py
"""
SSM Session Duration: flag active Session Manager sessions that have been open
longer than the configured maximum.

- One result per distinct session target; the first session listed for a target is the one judged.
- A session is within policy only while the configured maximum is strictly greater than its elapsed minutes.
- Passing results cite the configured maximum; failing results cite the session's own MaxSessionDuration.
"""

from typing import Any, List, Optional

from models import RuleDefinition, SessionRecord, SettingSpec, Status, ThresholdFail, ThresholdPass
from scanner.engine import ResultSink, Rule, RunContext, dedupe
from scanner.helpers import minutes_between, resource_arn
from scanner.settings import Threshold, is_nan

MAX_DURATION_SETTING = "ssm_session_max_duration"

DEFINITION = RuleDefinition(
    title="SSM Session Duration",
    category="SSM",
    domain="Identity Access and Management",
    description="Ensure that all active sessions in the AWS Session Manager do not exceed the duration set in the settings.",
    more_info=(
        "The session manager gives users the ability to either open a shell in a EC2 instance or "
        "execute commands in a ECS task. This can be useful for when debugging issues in a container or instance."
    ),
    recommended_action="Terminate all the sessions which exceed the specified duration mentioned in settings.",
    link="https://docs.aws.amazon.com/systems-manager/latest/userguide/session-preferences-max-timeout.html",
    apis=("SSM:describeSessions",),
    settings={
        MAX_DURATION_SETTING: SettingSpec(
            name="Max Duration for SSM Session.",
            description="Maximum duration for SSM session.",
            regex=r"^((1440)|(14[0-3][0-9]{1})|(1[0-3][0-9]{2})|([1-9][0-9]{2})|([1-9][0-9]{1})|([1-9]))$",
            default=5,
        ),
    },
)


def exceeds(elapsed_minutes: int, threshold: Threshold) -> bool:
    """
    True when a session has reached or passed the threshold. NaN always exceeds.
    """
    if is_nan(threshold):
        return True
    return not threshold > elapsed_minutes


class SSMSessionDuration(Rule):
    definition = DEFINITION
    service = "ssm"
    api_path = ("ssm", "describeSessions")
    unavailable_message = "Unable to query for active SSM sessions"
    empty_message = "No Active SSM sessions found"

    def evaluate(self, region: str, items: List[Any], ctx: RunContext, sink: ResultSink) -> None:
        threshold = ctx.thresholds[MAX_DURATION_SETTING]
        # 0 means no maximum is enforced
        if not threshold:
            return

        for item in dedupe(items, key=_target_of):
            try:
                session = SessionRecord.from_api(item)
            except ValueError as e:
                target = _target_of(item)
                resource = resource_arn(ctx.partition, region, ctx.account_id, target) if target else None
                sink.add(Status.UNKNOWN, f"Unable to read SSM session: {e}", region, resource)
                continue
            self.judge(session, threshold, region, ctx, sink)

    def judge(self, session: SessionRecord, threshold: Threshold, region: str,
              ctx: RunContext, sink: ResultSink) -> None:
        resource = resource_arn(ctx.partition, region, ctx.account_id, session.target)
        elapsed = minutes_between(ctx.now, session.start_date)

        if exceeds(elapsed, threshold):
            sink.add(
                Status.FAIL,
                f"SSM Session duration length is {elapsed} minutes which is greater than "
                f"the max time set in SSM Session Manager {session.max_session_duration} minutes",
                region, resource,
                evidence=ThresholdFail(elapsed_minutes=elapsed, record_max_duration=session.max_session_duration),
            )
        else:
            sink.add(
                Status.OK,
                f"SSM Session duration length is {elapsed} minutes which is less than "
                f"the max time set in SSM Session Manager {threshold} minutes",
                region, resource,
                evidence=ThresholdPass(elapsed_minutes=elapsed, threshold=threshold),
            )


def _target_of(item: Any) -> Optional[str]:
    target = item.get("Target") if isinstance(item, dict) else None
    return target if isinstance(target, str) else None
