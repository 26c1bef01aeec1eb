"""Cleanup report model.

Terminal artifact of one engine run. The ``to_dict`` shape (runId,
perKindSummary, errors, ...) is the canonical external report schema.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class RunStatus(Enum):
    """Run-level status.

    State meaning:
        completed: every scheduled deletion succeeded (or nothing to do)
        partial: some deletions failed or some pairs could not be listed
        failed: configuration invalid or every pair's listing failed
        cancelled: run stopped before all pairs were processed
    """

    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"
    CANCELLED = "cancelled"


class RunMode(Enum):
    """Run execution mode."""

    DRY_RUN = "dry-run"
    EXECUTE = "execute"


@dataclass
class KindSummary:
    """Counts for one resource kind."""

    deleted: int = 0
    failed: int = 0
    skipped: int = 0
    protected: int = 0
    planned: int = 0

    @property
    def total(self) -> int:
        return self.deleted + self.failed + self.skipped

    def to_dict(self) -> Dict[str, int]:
        return {
            "deleted": self.deleted,
            "failed": self.failed,
            "skipped": self.skipped,
            "protected": self.protected,
            "planned": self.planned,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> KindSummary:
        return cls(**{key: int(data.get(key, 0)) for key in ("deleted", "failed", "skipped", "protected", "planned")})


@dataclass
class ReportError:
    """A single error surfaced in a report.

    Attributes:
        message: Human-readable error
        kind: Resource kind value (optional for run-level errors)
        environment: Environment value (optional for run-level errors)
        identifier: Resource identifier (None for pair-level errors)
    """

    message: str
    kind: Optional[str] = None
    environment: Optional[str] = None
    identifier: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "environment": self.environment,
            "identifier": self.identifier,
            "message": self.message,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ReportError:
        return cls(
            message=data["message"],
            kind=data.get("kind"),
            environment=data.get("environment"),
            identifier=data.get("identifier"),
        )


@dataclass
class CleanupReport:
    """Cleanup report entity.

    Attributes:
        run_id: Identifier of the run that produced this report
        started_at: When the run started (UTC)
        finished_at: When the run finished (UTC)
        per_kind_summary: Mapping of kind value to counts
        total_storage_freed_estimate: Bytes freed by deleted resources that
            report a size; None when no deleted resource carries one
        errors: Ordered errors (resource errors first, then run-level errors)
        status: Run-level status
        mode: dry-run or execute
    """

    run_id: str
    started_at: datetime
    finished_at: datetime
    per_kind_summary: Dict[str, KindSummary] = field(default_factory=dict)
    total_storage_freed_estimate: Optional[int] = None
    errors: List[ReportError] = field(default_factory=list)
    status: RunStatus = RunStatus.COMPLETED
    mode: RunMode = RunMode.EXECUTE

    @property
    def deleted_count(self) -> int:
        return sum(s.deleted for s in self.per_kind_summary.values())

    @property
    def failed_count(self) -> int:
        return sum(s.failed for s in self.per_kind_summary.values())

    @property
    def skipped_count(self) -> int:
        return sum(s.skipped for s in self.per_kind_summary.values())

    @property
    def is_successful(self) -> bool:
        """Whether the run counts as successful (partial success included)."""
        return self.status in (RunStatus.COMPLETED, RunStatus.PARTIAL)

    @property
    def duration_seconds(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        """Convert report to its canonical JSON-compatible shape."""
        data: Dict[str, Any] = {
            "runId": self.run_id,
            "startedAt": self.started_at.isoformat(),
            "finishedAt": self.finished_at.isoformat(),
            "status": self.status.value,
            "mode": self.mode.value,
            "perKindSummary": {kind: summary.to_dict() for kind, summary in self.per_kind_summary.items()},
            "errors": [error.to_dict() for error in self.errors],
        }
        if self.total_storage_freed_estimate is not None:
            data["totalStorageFreedEstimate"] = self.total_storage_freed_estimate
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> CleanupReport:
        """Create report from its canonical dictionary shape.

        Raises:
            KeyError: If a required key is missing
            ValueError: If status, mode or timestamps are invalid
        """
        return cls(
            run_id=data["runId"],
            started_at=_parse_timestamp(data["startedAt"]),
            finished_at=_parse_timestamp(data["finishedAt"]),
            per_kind_summary={
                kind: KindSummary.from_dict(summary) for kind, summary in (data.get("perKindSummary") or {}).items()
            },
            total_storage_freed_estimate=data.get("totalStorageFreedEstimate"),
            errors=[ReportError.from_dict(e) for e in data.get("errors") or []],
            status=RunStatus(data.get("status", RunStatus.COMPLETED.value)),
            mode=RunMode(data.get("mode", RunMode.EXECUTE.value)),
        )


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
