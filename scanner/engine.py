# scanner/engine.py
"""
Rule engine: the mechanics every rule shares.

A rule declares its metadata (RuleDefinition), the cached API call it reads
(api_path) and an evaluate() method for one region's items. Rule.run():

1. resolves settings and account context once per run
2. evaluates every region on a thread pool, each with its own findings and provenance
3. joins all regions, merges their results in region order and returns a RunResult

Region-level conditions are handled here, before evaluate() is called:
- nothing cached for the region: no finding
- cached error or missing data: one UNKNOWN finding carrying the error
- empty result: one OK finding
A region task that raises is reported as UNKNOWN for that region only.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Hashable, Iterable, Iterator, List, Mapping, Optional, Tuple, TypeVar

from config import DEFAULT_MAX_WORKERS
from models import Finding, RuleDefinition, RunResult, Status
from scanner import helpers
from scanner.cache import add_source, describe_error, lookup, merge_sources
from scanner.settings import Threshold, resolve_threshold

logger = logging.getLogger(__name__)

T = TypeVar("T")


def dedupe(records: Iterable[T], key: Callable[[T], Hashable]) -> List[T]:
    """
    Keep the first record for each distinct key, preserving input order.
    """
    seen = set()
    unique: List[T] = []
    for record in records:
        k = key(record)
        if k in seen:
            continue
        seen.add(k)
        unique.append(record)
    return unique


class ResultSink:
    """
    Append-only, ordered collection of findings.
    """

    def __init__(self) -> None:
        self._findings: List[Finding] = []

    def add(self, status: Status, message: str, region: str,
            resource: Optional[str] = None, evidence: Any = None) -> Finding:
        finding = Finding(status=status, message=message, region=region,
                          resource=resource, evidence=evidence)
        self._findings.append(finding)
        return finding

    def extend(self, other: "ResultSink") -> None:
        self._findings.extend(other.findings)

    @property
    def findings(self) -> Tuple[Finding, ...]:
        return tuple(self._findings)

    def __len__(self) -> int:
        return len(self._findings)

    def __iter__(self) -> Iterator[Finding]:
        return iter(self.findings)


@dataclass(frozen=True)
class RunContext:
    """Per-run values shared read-only by every region task."""
    settings: Mapping[str, Any]
    now: datetime
    partition: str
    account_region: str
    account_id: Optional[str]
    thresholds: Dict[str, Threshold] = field(default_factory=dict)


@dataclass
class RegionOutcome:
    region: str
    sink: ResultSink = field(default_factory=ResultSink)
    source: Dict[str, Any] = field(default_factory=dict)


class Rule:
    """
    Base class for a rule evaluated per region against the API cache.

    Subclasses set `definition`, `service` and `api_path`, and implement evaluate().
    """

    definition: RuleDefinition
    service: str = ""
    api_path: Tuple[str, ...] = ()
    unavailable_message = "Unable to query for resources"
    empty_message = "No resources found"

    def __init__(self, max_workers: Optional[int] = None, strict_settings: Optional[bool] = None):
        self.max_workers = max_workers or DEFAULT_MAX_WORKERS
        self.strict_settings = strict_settings

    @property
    def name(self) -> str:
        return self.definition.title

    # -- run ---------------------------------------------------------------

    def run(self, cache: Any, settings: Mapping[str, Any], now: Optional[datetime] = None,
            callback: Optional[Callable[[RunResult], None]] = None) -> RunResult:
        """
        Evaluate the rule in every region and return the ordered findings.

        `callback`, when given, is called exactly once with the result after all
        regions have finished.
        """
        source: Dict[str, Any] = {}
        ctx = self.build_context(cache, settings, source, now)
        region_list = helpers.regions(settings, self.service)
        logger.debug("%s: evaluating %d regions", self.name, len(region_list))

        outcomes: List[RegionOutcome] = []
        if region_list:
            workers = max(1, min(self.max_workers, len(region_list)))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="region") as pool:
                futures = [pool.submit(self._run_region, cache, region, ctx) for region in region_list]
                outcomes = [f.result() for f in futures]

        sink = ResultSink()
        for outcome in outcomes:
            sink.extend(outcome.sink)
            merge_sources(source, outcome.source)

        result = RunResult(findings=sink.findings, source=source, cache=cache)
        logger.debug("%s: %d findings", self.name, len(result.findings))
        if callback is not None:
            callback(result)
        return result

    def build_context(self, cache: Any, settings: Mapping[str, Any], source: Dict[str, Any],
                      now: Optional[datetime] = None) -> RunContext:
        account_region = helpers.default_region(settings)
        return RunContext(
            settings=settings,
            now=now or datetime.now(timezone.utc),
            partition=helpers.default_partition(settings),
            account_region=account_region,
            account_id=helpers.account_id(cache, source, account_region),
            thresholds=self.resolve_settings(settings),
        )

    def resolve_settings(self, settings: Mapping[str, Any]) -> Dict[str, Threshold]:
        kwargs = {} if self.strict_settings is None else {"strict": self.strict_settings}
        return {
            key: resolve_threshold(settings, key, spec, **kwargs)
            for key, spec in self.definition.settings.items()
        }

    # -- per region --------------------------------------------------------

    def _run_region(self, cache: Any, region: str, ctx: RunContext) -> RegionOutcome:
        outcome = RegionOutcome(region=region)
        try:
            self.evaluate_region(cache, outcome, ctx)
        except Exception as e:
            logger.exception("%s: evaluation failed in %s", self.name, region)
            # A crashed region reports only the error
            outcome.sink = ResultSink()
            outcome.sink.add(Status.UNKNOWN, f"Unexpected error evaluating {self.name}: {e}", region)
        return outcome

    def evaluate_region(self, cache: Any, outcome: RegionOutcome, ctx: RunContext) -> None:
        region = outcome.region
        path = [*self.api_path, region]
        raw = add_source(cache, outcome.source, path)
        if raw is None:
            return

        entry = lookup(cache, path)
        if entry.failed:
            outcome.sink.add(Status.UNKNOWN, f"{self.unavailable_message}: {describe_error(entry)}", region)
            return

        items = entry.data
        if not items:
            outcome.sink.add(Status.OK, self.empty_message, region)
            return

        self.evaluate(region, list(items), ctx, outcome.sink)

    def evaluate(self, region: str, items: List[Any], ctx: RunContext, sink: ResultSink) -> None:
        raise NotImplementedError
