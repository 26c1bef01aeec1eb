"""Report aggregation for cleanup runs."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Sequence

from src.models.cleanup_report import CleanupReport, KindSummary, ReportError, RunMode, RunStatus
from src.models.cleanup_result import CleanupOutcome, CleanupResult
from src.models.decision import DecisionReason


class ReportAggregator:
    """Aggregate cleanup results into a CleanupReport.

    Aggregation is pure: the same ``results`` sequence (in the same order)
    always yields the same summary, savings figure and error list.
    """

    def aggregate(
        self,
        run_id: str,
        results: Sequence[CleanupResult],
        started_at: Optional[datetime] = None,
        finished_at: Optional[datetime] = None,
        run_errors: Sequence[ReportError] = (),
        mode: RunMode = RunMode.EXECUTE,
        status: Optional[RunStatus] = None,
    ) -> CleanupReport:
        """Build the report for a run.

        Args:
            run_id: Run identifier
            results: Cleanup results in deterministic order
            started_at: Run start time (defaults to now)
            finished_at: Run finish time (defaults to now)
            run_errors: Errors not tied to a single resource, appended after
                resource errors
            mode: dry-run or execute
            status: Explicit run status; derived from results when omitted

        Returns:
            CleanupReport for the run
        """
        now = datetime.now(timezone.utc)
        summary: dict[str, KindSummary] = {}
        errors: list[ReportError] = []
        freed: Optional[int] = None

        for result in results:
            resource = result.decision.resource
            counts = summary.setdefault(resource.kind.value, KindSummary())

            if result.outcome == CleanupOutcome.DELETED:
                counts.deleted += 1
            elif result.outcome == CleanupOutcome.FAILED:
                counts.failed += 1
            else:
                counts.skipped += 1

            if result.decision.reason == DecisionReason.PROTECTED:
                counts.protected += 1

            planned = result.decision.is_delete and result.outcome == CleanupOutcome.SKIPPED and not result.error
            if planned:
                counts.planned += 1

            counts_toward_savings = (
                result.outcome == CleanupOutcome.DELETED if mode == RunMode.EXECUTE else planned
            )
            if counts_toward_savings and resource.size_bytes is not None:
                freed = (freed or 0) + resource.size_bytes

            if result.error:
                errors.append(
                    ReportError(
                        message=result.error,
                        kind=resource.kind.value,
                        environment=resource.environment.value,
                        identifier=resource.identifier,
                    )
                )

        errors.extend(run_errors)

        if status is None:
            status = self.derive_status(results, run_errors)

        return CleanupReport(
            run_id=run_id,
            started_at=started_at or now,
            finished_at=finished_at or now,
            per_kind_summary=summary,
            total_storage_freed_estimate=freed,
            errors=errors,
            status=status,
            mode=mode,
        )

    @staticmethod
    def derive_status(results: Sequence[CleanupResult], run_errors: Sequence[ReportError] = ()) -> RunStatus:
        """Status of a run that was neither cancelled nor aborted.

        Any failed deletion or run-level error makes the run partial.
        """
        if run_errors or any(r.outcome == CleanupOutcome.FAILED for r in results):
            return RunStatus.PARTIAL
        return RunStatus.COMPLETED
