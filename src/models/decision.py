"""Evaluation decision model."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from src.models.resource import ResourceDescriptor


class DecisionAction(Enum):
    """What the evaluator decided to do with a resource."""

    DELETE = "delete"
    RETAIN = "retain"


class DecisionReason(Enum):
    """Why the evaluator reached a decision."""

    AGE_EXCEEDED = "age_exceeded"
    COUNT_EXCEEDED = "count_exceeded"
    PROTECTED = "protected"
    WITHIN_POLICY = "within_policy"
    NO_RULE = "no_rule"


@dataclass(frozen=True)
class EvaluationDecision:
    """Decision for a single resource, produced fresh per evaluation.

    Attributes:
        resource: Resource the decision applies to
        action: DELETE or RETAIN
        reason: Reason for the action
    """

    resource: ResourceDescriptor
    action: DecisionAction
    reason: DecisionReason

    @property
    def is_delete(self) -> bool:
        return self.action == DecisionAction.DELETE

    def to_dict(self) -> dict[str, Any]:
        return {
            "resource": self.resource.to_dict(),
            "action": self.action.value,
            "reason": self.reason.value,
        }
