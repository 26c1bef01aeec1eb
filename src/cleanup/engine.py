"""Cleanup engine orchestration.

Lists resources per (kind, environment) pair, evaluates them against the
rule set, applies deletions and aggregates everything into one report.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime, timezone
from itertools import product
from typing import Iterable, Optional

from src.catalog.base import ResourceCatalog
from src.cleanup.aggregator import ReportAggregator
from src.cleanup.executor import CleanupExecutor
from src.errors import CatalogUnavailable, NoRuleDefined
from src.models.cleanup_report import CleanupReport, ReportError, RunMode, RunStatus
from src.models.cleanup_result import CleanupResult
from src.models.decision import EvaluationDecision
from src.models.resource import Environment, ResourceKind
from src.models.run_context import RunContext
from src.policy.evaluator import PolicyEvaluator
from src.policy.rules import RuleSet, pair_sort_key
from src.reporting.sinks import ReportSink

logger = logging.getLogger(__name__)

Pair = tuple[ResourceKind, Environment]


@dataclass
class PairEvaluation:
    """Decisions for one (kind, environment) pair.

    Attributes:
        kind: Resource kind
        environment: Environment
        decisions: Evaluation decisions (empty if listing failed)
        error: Listing error message, if the catalog was unavailable
        has_rule: False when the pair fell back to retain-all
    """

    kind: ResourceKind
    environment: Environment
    decisions: list[EvaluationDecision] = field(default_factory=list)
    error: Optional[str] = None
    has_rule: bool = True

    @property
    def unavailable(self) -> bool:
        return self.error is not None


@dataclass
class PairOutcome:
    """Cleanup results for one (kind, environment) pair."""

    evaluation: PairEvaluation
    results: list[CleanupResult] = field(default_factory=list)
    cancelled: bool = False


class CleanupEngine:
    """Cleanup engine orchestrator.

    Pairs are independent, so they are processed by a pool of workers; each
    pair's deletions are bounded further by the executor's own pool. Results
    are merged in (kind, environment) order once every pair has finished.

    Attributes:
        catalog: Resource catalog to list from and delete through
        rule_set: Retention rules, fixed for the engine's lifetime
        executor: Cleanup executor
        evaluator: Policy evaluator
        aggregator: Report aggregator
        sinks: Report sinks, published to after every run
        max_parallel_pairs: Maximum pairs processed concurrently
    """

    def __init__(
        self,
        catalog: ResourceCatalog,
        rule_set: RuleSet,
        executor: Optional[CleanupExecutor] = None,
        evaluator: Optional[PolicyEvaluator] = None,
        aggregator: Optional[ReportAggregator] = None,
        sinks: Optional[list[ReportSink]] = None,
        max_parallel_pairs: int = 4,
    ) -> None:
        self.catalog = catalog
        self.rule_set = rule_set
        self.executor = executor or CleanupExecutor(catalog)
        self.evaluator = evaluator or PolicyEvaluator()
        self.aggregator = aggregator or ReportAggregator()
        self.sinks = sinks or []
        self.max_parallel_pairs = max_parallel_pairs

    def resolve_pairs(
        self,
        kinds: Optional[Iterable[ResourceKind]] = None,
        environments: Optional[Iterable[Environment]] = None,
    ) -> list[Pair]:
        """Pairs to process for a run.

        With no filters, the pairs the rule set defines. With a filter on
        either axis, the full cross product (pairs without a rule are then
        listed and retained).
        """
        if kinds is None and environments is None:
            return self.rule_set.pairs()

        kind_list = list(kinds) if kinds is not None else list(ResourceKind)
        env_list = list(environments) if environments is not None else list(Environment)
        return sorted(set(product(kind_list, env_list)), key=pair_sort_key)

    def preview(
        self,
        kinds: Optional[Iterable[ResourceKind]] = None,
        environments: Optional[Iterable[Environment]] = None,
        now: Optional[datetime] = None,
    ) -> list[PairEvaluation]:
        """Evaluate pairs without deleting anything.

        Returns:
            One PairEvaluation per pair, in (kind, environment) order
        """
        self._validate_rules()
        context = RunContext(now=now, dry_run=True)
        return [self.evaluate_pair(context, kind, env) for kind, env in self.resolve_pairs(kinds, environments)]

    def run(
        self,
        kinds: Optional[Iterable[ResourceKind]] = None,
        environments: Optional[Iterable[Environment]] = None,
        dry_run: bool = False,
        timeout: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> CleanupReport:
        """Execute one cleanup run.

        Args:
            kinds: Resource kinds to process (optional)
            environments: Environments to process (optional)
            dry_run: Evaluate and report without deleting
            timeout: Seconds before the run is cancelled (optional)
            now: Reference time for age evaluation (defaults to run start)

        Returns:
            CleanupReport for the run

        Raises:
            ConfigInvalid: If the rule set is malformed (nothing is deleted)
        """
        self._validate_rules()

        context = RunContext(now=now, dry_run=dry_run)
        pairs = self.resolve_pairs(kinds, environments)
        mode = RunMode.DRY_RUN if dry_run else RunMode.EXECUTE
        logger.info(f"Starting cleanup run {context.run_id} ({mode.value}) over {len(pairs)} pairs")

        outcomes = self._process_pairs(context, pairs, timeout)

        results: list[CleanupResult] = []
        run_errors: list[ReportError] = []
        for outcome in outcomes:
            evaluation = outcome.evaluation
            results.extend(outcome.results)
            if evaluation.unavailable:
                run_errors.append(
                    ReportError(
                        message=evaluation.error or "catalog unavailable",
                        kind=evaluation.kind.value,
                        environment=evaluation.environment.value,
                    )
                )
            elif outcome.cancelled:
                run_errors.append(
                    ReportError(
                        message="cancelled before processing",
                        kind=evaluation.kind.value,
                        environment=evaluation.environment.value,
                    )
                )

        if context.cancelled:
            status = RunStatus.CANCELLED
        elif outcomes and all(o.evaluation.unavailable for o in outcomes):
            status = RunStatus.FAILED
        else:
            status = None

        report = self.aggregator.aggregate(
            run_id=context.run_id,
            results=results,
            started_at=context.started_at,
            finished_at=datetime.now(timezone.utc),
            run_errors=run_errors,
            mode=mode,
            status=status,
        )

        logger.info(
            f"Cleanup run {report.run_id} finished with status {report.status.value}: "
            f"{report.deleted_count} deleted, {report.failed_count} failed, {report.skipped_count} skipped"
        )
        self._publish(report)
        return report

    def evaluate_pair(self, context: RunContext, kind: ResourceKind, environment: Environment) -> PairEvaluation:
        """List and evaluate one pair.

        A listing failure aborts only this pair. A missing rule falls back to
        retaining every resource.
        """
        try:
            resources = self.catalog.list(kind, environment)
        except CatalogUnavailable as e:
            logger.error(f"Catalog unavailable for {kind.value}/{environment.value}: {e}")
            return PairEvaluation(kind=kind, environment=environment, error=str(e))

        try:
            rule = self.rule_set.rule_for(kind, environment)
        except NoRuleDefined as e:
            logger.warning(f"{e}; retaining all {len(resources)} resources")
            return PairEvaluation(
                kind=kind,
                environment=environment,
                decisions=self.evaluator.retain_all(resources),
                has_rule=False,
            )

        decisions = self.evaluator.evaluate(resources, rule, context.now)
        return PairEvaluation(kind=kind, environment=environment, decisions=decisions)

    def _process_pair(self, context: RunContext, kind: ResourceKind, environment: Environment) -> PairOutcome:
        evaluation = self.evaluate_pair(context, kind, environment)
        if evaluation.unavailable:
            return PairOutcome(evaluation=evaluation)

        results = self.executor.apply(evaluation.decisions, context)
        return PairOutcome(evaluation=evaluation, results=results)

    def _process_pairs(self, context: RunContext, pairs: list[Pair], timeout: Optional[float]) -> list[PairOutcome]:
        if not pairs:
            return []

        workers = min(self.max_parallel_pairs, len(pairs))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures: dict[Pair, Future] = {
                pair: pool.submit(self._process_pair, context, pair[0], pair[1]) for pair in pairs
            }
            _, not_done = wait(futures.values(), timeout=timeout)

            if not_done:
                logger.warning(f"Cleanup run {context.run_id} timed out after {timeout}s, cancelling")
                context.cancel()
                for future in not_done:
                    future.cancel()
                # In-flight pairs finish on their own; queued deletions see the cancel flag
                wait([f for f in not_done if not f.cancelled()])

        outcomes = []
        for pair, future in futures.items():
            if future.cancelled():
                outcomes.append(
                    PairOutcome(evaluation=PairEvaluation(kind=pair[0], environment=pair[1]), cancelled=True)
                )
                continue
            try:
                outcomes.append(future.result())
            except Exception as e:
                logger.exception(f"Unexpected error processing {pair[0].value}/{pair[1].value}")
                evaluation = PairEvaluation(kind=pair[0], environment=pair[1], error=f"Unexpected error: {e}")
                outcomes.append(PairOutcome(evaluation=evaluation))
        return outcomes

    def _validate_rules(self) -> None:
        for rule in self.rule_set.rules.values():
            rule.validate()

    def _publish(self, report: CleanupReport) -> None:
        for sink in self.sinks:
            try:
                sink.publish(report)
            except Exception as e:
                # Publishing is best-effort; the cleanup already happened
                logger.error(f"Failed to publish report {report.run_id} to {sink.__class__.__name__}: {e}")
