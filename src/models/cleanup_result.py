"""Cleanup result model.

Outcome of applying a single evaluation decision.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from src.models.decision import EvaluationDecision


class CleanupOutcome(Enum):
    """Individual resource cleanup outcome."""

    DELETED = "deleted"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class CleanupResult:
    """Cleanup result entity.

    Created by the executor for every decision it is handed and consumed by
    the report aggregator.

    Validation rules:
        - outcome=failed: requires error
        - outcome=deleted: requires at least one attempt
        - attempts must be >= 0

    Attributes:
        decision: Decision that was applied
        outcome: DELETED, FAILED or SKIPPED
        error: Last error message if failed or skipped by cancellation (optional)
        attempts: Number of delete calls made
    """

    decision: EvaluationDecision
    outcome: CleanupOutcome
    error: Optional[str] = None
    attempts: int = 0

    def validate(self) -> bool:
        """Validate result invariants.

        Returns:
            True if validation passes

        Raises:
            ValueError: If any validation rule fails
        """
        if self.attempts < 0:
            raise ValueError("attempts cannot be negative")
        if self.outcome == CleanupOutcome.FAILED and not self.error:
            raise ValueError("Failed outcome requires error")
        if self.outcome == CleanupOutcome.DELETED and self.attempts < 1:
            raise ValueError("Deleted outcome requires at least one attempt")
        return True

    def to_dict(self) -> dict[str, Any]:
        resource = self.decision.resource
        return {
            "kind": resource.kind.value,
            "environment": resource.environment.value,
            "identifier": resource.identifier,
            "action": self.decision.action.value,
            "reason": self.decision.reason.value,
            "outcome": self.outcome.value,
            "error": self.error,
            "attempts": self.attempts,
        }
