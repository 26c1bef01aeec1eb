"""Resource cleanup module.

This module applies retention decisions to external resources and collects
the outcome of a run into a single report.

Classes:
    CleanupEngine: Main orchestrator for cleanup runs
    CleanupExecutor: Retrying, bounded-concurrency deletion of decisions
    ReportAggregator: Per-kind aggregation of cleanup results
"""

from __future__ import annotations

from src.cleanup.aggregator import ReportAggregator
from src.cleanup.engine import CleanupEngine
from src.cleanup.executor import CleanupExecutor

__all__ = [
    "CleanupEngine",
    "CleanupExecutor",
    "ReportAggregator",
]
