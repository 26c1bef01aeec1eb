"""Report sinks.

A sink receives the finished report of a run. Publishing is best-effort:
the engine logs sink failures and never rolls back cleanup because of them.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

import yaml

from src.models.cleanup_report import CleanupReport

logger = logging.getLogger(__name__)


class ReportSink(ABC):
    """Abstract base class for report sinks."""

    @abstractmethod
    def publish(self, report: CleanupReport) -> None:
        """Publish a finished report."""


class JsonFileSink(ReportSink):
    """Write the canonical JSON report to a file."""

    def __init__(self, filepath: Union[str, Path]) -> None:
        self.filepath = Path(filepath)

    def publish(self, report: CleanupReport) -> None:
        self.filepath.parent.mkdir(parents=True, exist_ok=True)

        with open(self.filepath, "w") as f:
            json.dump(report.to_dict(), f, indent=2)


class LoggingSink(ReportSink):
    """Log a one-line report summary."""

    def __init__(self, log: Optional[logging.Logger] = None) -> None:
        self.log = log or logger

    def publish(self, report: CleanupReport) -> None:
        freed = report.total_storage_freed_estimate
        self.log.info(
            f"Run {report.run_id} [{report.mode.value}] {report.status.value}: "
            f"deleted={report.deleted_count} failed={report.failed_count} skipped={report.skipped_count} "
            f"errors={len(report.errors)}" + (f" freed_bytes={freed}" if freed is not None else "")
        )


class AuditSink(ReportSink):
    """Audit log storage and retrieval for cleanup reports.

    Stores reports as YAML files organized by year/month of the run start.
    Supports querying reports by date range and retrieving a single report.

    Storage structure:
        ~/.awsclean/audit-logs/
            2026/
                10/
                    report-run_123.yaml
                    report-run_456.yaml

    Attributes:
        storage_dir: Base directory for audit logs
    """

    def __init__(self, storage_dir: Optional[Union[str, Path]] = None) -> None:
        """Initialize audit storage.

        Args:
            storage_dir: Base directory for audit logs (default: ~/.awsclean/audit-logs)
        """
        if storage_dir is None:
            storage_dir = Path.home() / ".awsclean" / "audit-logs"

        self.storage_dir = Path(storage_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)

    def publish(self, report: CleanupReport) -> None:
        """Write the report audit log, overwriting any log for the same run."""
        year_month_dir = self.storage_dir / str(report.started_at.year) / f"{report.started_at.month:02d}"
        year_month_dir.mkdir(parents=True, exist_ok=True)

        audit_data = {
            "metadata": {
                "version": "1.0",
                "log_type": "resource_cleanup",
                "created_at": datetime.now(timezone.utc).isoformat(),
            },
            "report": report.to_dict(),
        }

        audit_file = year_month_dir / f"report-{report.run_id}.yaml"
        with open(audit_file, "w") as f:
            yaml.safe_dump(audit_data, f, default_flow_style=False, sort_keys=False)

    def get_report(self, run_id: str) -> Optional[CleanupReport]:
        """Retrieve a report by run ID.

        Returns:
            CleanupReport if found, None otherwise
        """
        for audit_file in self.storage_dir.glob(f"*/*/report-{run_id}.yaml"):
            with open(audit_file, "r") as f:
                return CleanupReport.from_dict(yaml.safe_load(f)["report"])

        return None

    def query_reports(
        self,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> list[CleanupReport]:
        """Query reports whose run started within a date range.

        Args:
            since: Start date (inclusive), None for all
            until: End date (inclusive), None for all

        Returns:
            Reports ordered by start time
        """
        since = _aware(since)
        until = _aware(until)
        results = []

        for audit_file in self.storage_dir.glob("*/*/report-*.yaml"):
            with open(audit_file, "r") as f:
                report = CleanupReport.from_dict(yaml.safe_load(f)["report"])

            started_at = _aware(report.started_at)
            if since and started_at < since:
                continue
            if until and started_at > until:
                continue

            results.append(report)

        return sorted(results, key=lambda r: _aware(r.started_at))


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
