"""Data models for the cleanup engine."""

from __future__ import annotations

from src.models.cleanup_report import CleanupReport, KindSummary, ReportError, RunMode, RunStatus
from src.models.cleanup_result import CleanupOutcome, CleanupResult
from src.models.decision import DecisionAction, DecisionReason, EvaluationDecision
from src.models.resource import Environment, ResourceDescriptor, ResourceKind
from src.models.retention_rule import RetentionRule
from src.models.run_context import RunContext

__all__ = [
    "CleanupOutcome",
    "CleanupReport",
    "CleanupResult",
    "DecisionAction",
    "DecisionReason",
    "Environment",
    "EvaluationDecision",
    "KindSummary",
    "ReportError",
    "ResourceDescriptor",
    "ResourceKind",
    "RetentionRule",
    "RunContext",
    "RunMode",
    "RunStatus",
]
