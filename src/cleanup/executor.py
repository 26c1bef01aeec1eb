"""Cleanup executor.

Applies DELETE decisions through a resource catalog with retry and
per-resource isolation.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence

from src.catalog.base import ResourceCatalog
from src.errors import ResourceNotFound, TransientError
from src.models.cleanup_result import CleanupOutcome, CleanupResult
from src.models.decision import EvaluationDecision
from src.models.resource import ResourceKind
from src.models.run_context import RunContext

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "cancelled"


class CleanupExecutor:
    """Deletion executor with retry and bounded concurrency.

    Each DELETE decision is attempted up to ``max_attempts`` times with
    exponential backoff (``base_delay * backoff_factor ** n`` seconds between
    attempts). A resource that is already gone counts as deleted. One
    resource's failure never affects the others and never raises.

    Concurrent deletions are bounded per resource kind across every
    ``apply`` call sharing this executor.

    Attributes:
        catalog: Catalog performing the deletions
        max_attempts: Maximum delete attempts per resource
        base_delay: Delay before the second attempt, in seconds
        backoff_factor: Multiplier applied to the delay after each attempt
        max_workers: Maximum concurrent deletions per resource kind
    """

    def __init__(
        self,
        catalog: ResourceCatalog,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        backoff_factor: float = 2.0,
        max_workers: int = 5,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")

        self.catalog = catalog
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.backoff_factor = backoff_factor
        self.max_workers = max_workers
        self._kind_slots: dict[ResourceKind, threading.BoundedSemaphore] = {}
        self._slots_lock = threading.Lock()

    def apply(
        self,
        decisions: Sequence[EvaluationDecision],
        context: Optional[RunContext] = None,
    ) -> list[CleanupResult]:
        """Apply decisions.

        Args:
            decisions: Decisions to apply
            context: Run context (dry-run flag and cancellation); optional

        Returns:
            One result per decision, in the same order as ``decisions``
        """
        context = context or RunContext()
        results: list[Optional[CleanupResult]] = [None] * len(decisions)
        to_delete: list[int] = []

        for index, decision in enumerate(decisions):
            if decision.is_delete and not context.dry_run:
                to_delete.append(index)
            else:
                results[index] = CleanupResult(decision=decision, outcome=CleanupOutcome.SKIPPED, attempts=0)

        if to_delete:
            workers = min(self.max_workers, len(to_delete))
            with ThreadPoolExecutor(max_workers=workers) as pool:
                futures = {index: pool.submit(self._delete, decisions[index], context) for index in to_delete}
                for index, future in futures.items():
                    results[index] = future.result()

        applied = [result for result in results if result is not None]
        for result in applied:
            result.validate()
        return applied

    def _delete(self, decision: EvaluationDecision, context: RunContext) -> CleanupResult:
        """Delete one resource, retrying transient failures.

        Never raises: every failure is folded into the returned result.
        """
        resource = decision.resource
        label = f"{resource.kind.value} {resource.identifier}"

        if context.cancelled:
            logger.info(f"Run {context.run_id} cancelled, skipping {label}")
            return CleanupResult(
                decision=decision, outcome=CleanupOutcome.SKIPPED, error=CANCELLED_MESSAGE, attempts=0
            )

        last_error = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                with self._slot(resource.kind):
                    self.catalog.delete(resource)
                logger.info(f"Successfully deleted {label}")
                return CleanupResult(decision=decision, outcome=CleanupOutcome.DELETED, attempts=attempt)

            except ResourceNotFound:
                logger.info(f"{label} already deleted")
                return CleanupResult(decision=decision, outcome=CleanupOutcome.DELETED, attempts=attempt)

            except TransientError as e:
                last_error = str(e) or e.__class__.__name__

            except Exception as e:
                last_error = f"Unexpected error deleting {label}: {e}"
                logger.error(last_error)

            if attempt < self.max_attempts:
                wait_time = self.base_delay * self.backoff_factor ** (attempt - 1)
                logger.debug(
                    f"Delete of {label} failed ({last_error}), "
                    f"retrying in {wait_time}s (attempt {attempt}/{self.max_attempts})"
                )
                time.sleep(wait_time)

        logger.error(f"Failed to delete {label} after {self.max_attempts} attempts: {last_error}")
        return CleanupResult(
            decision=decision,
            outcome=CleanupOutcome.FAILED,
            error=last_error,
            attempts=self.max_attempts,
        )

    def _slot(self, kind: ResourceKind) -> threading.BoundedSemaphore:
        with self._slots_lock:
            if kind not in self._kind_slots:
                self._kind_slots[kind] = threading.BoundedSemaphore(self.max_workers)
            return self._kind_slots[kind]
