"""Tests for CleanupReport model.

Test coverage for the canonical JSON report shape.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone

from src.models.cleanup_report import CleanupReport, KindSummary, ReportError, RunMode, RunStatus


def build_report(**kwargs) -> CleanupReport:
    defaults = dict(
        run_id="run_123",
        started_at=datetime(2026, 3, 15, 12, 0, 0, tzinfo=timezone.utc),
        finished_at=datetime(2026, 3, 15, 12, 0, 42, tzinfo=timezone.utc),
        per_kind_summary={"image": KindSummary(deleted=4, failed=1, skipped=7, protected=2)},
        errors=[ReportError(message="Throttling", kind="image", environment="dev", identifier="img-9")],
        status=RunStatus.PARTIAL,
    )
    defaults.update(kwargs)
    return CleanupReport(**defaults)


class TestCleanupReport:
    """Test suite for CleanupReport model."""

    def test_to_dict_uses_canonical_keys(self) -> None:
        data = build_report(total_storage_freed_estimate=1024).to_dict()

        assert data["runId"] == "run_123"
        assert data["startedAt"] == "2026-03-15T12:00:00+00:00"
        assert data["perKindSummary"]["image"] == {
            "deleted": 4,
            "failed": 1,
            "skipped": 7,
            "protected": 2,
            "planned": 0,
        }
        assert data["errors"] == [
            {"kind": "image", "environment": "dev", "identifier": "img-9", "message": "Throttling"}
        ]
        assert data["totalStorageFreedEstimate"] == 1024
        assert data["status"] == "partial"
        assert data["mode"] == "execute"

    def test_to_dict_omits_unknown_savings(self) -> None:
        data = build_report().to_dict()

        assert "totalStorageFreedEstimate" not in data

    def test_to_dict_is_json_serializable(self) -> None:
        json.dumps(build_report().to_dict())

    def test_from_dict_restores_report(self) -> None:
        report = build_report(total_storage_freed_estimate=99, mode=RunMode.DRY_RUN)

        restored = CleanupReport.from_dict(report.to_dict())

        assert restored == report

    def test_counts_and_duration(self) -> None:
        report = build_report(
            per_kind_summary={
                "image": KindSummary(deleted=4, failed=1, skipped=7),
                "snapshot": KindSummary(deleted=2, skipped=1),
            }
        )

        assert report.deleted_count == 6
        assert report.failed_count == 1
        assert report.skipped_count == 8
        assert report.duration_seconds == 42

    def test_partial_run_counts_as_successful(self) -> None:
        assert build_report(status=RunStatus.PARTIAL).is_successful
        assert build_report(status=RunStatus.COMPLETED).is_successful
        assert not build_report(status=RunStatus.FAILED).is_successful
        assert not build_report(status=RunStatus.CANCELLED).is_successful
