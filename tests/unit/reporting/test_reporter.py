"""Tests for CleanupReporter class."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from rich.console import Console

from src.cleanup.engine import PairEvaluation
from src.models.cleanup_report import CleanupReport, KindSummary, ReportError, RunMode, RunStatus
from src.models.decision import DecisionAction, DecisionReason, EvaluationDecision
from src.models.resource import Environment, ResourceKind
from src.reporting.reporter import CleanupReporter, format_bytes
from tests.fixtures.resources import make_resource


def recording_console() -> Console:
    return Console(record=True, width=160, color_system=None)


class TestFormatBytes:
    """Test suite for format_bytes helper."""

    @pytest.mark.parametrize(
        "size,expected",
        [(None, "n/a"), (512, "512 B"), (2048, "2.0 KiB"), (5 * 1024**3, "5.0 GiB")],
    )
    def test_format_bytes(self, size, expected: str) -> None:
        assert format_bytes(size) == expected


class TestCleanupReporter:
    """Test suite for CleanupReporter class."""

    def test_display_report(self) -> None:
        console = recording_console()
        report = CleanupReport(
            run_id="run_42",
            started_at=datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc),
            finished_at=datetime(2026, 3, 15, 12, 1, tzinfo=timezone.utc),
            per_kind_summary={"image": KindSummary(deleted=4, failed=1)},
            total_storage_freed_estimate=1024,
            errors=[ReportError(message="Throttling", kind="image", environment="dev", identifier="img-9")],
            status=RunStatus.PARTIAL,
        )

        CleanupReporter(console).display(report)

        output = console.export_text()
        assert "run_42" in output
        assert "PARTIAL" in output
        assert "1.0 KiB" in output
        assert "image/dev/img-9" in output

    def test_display_dry_run_report(self) -> None:
        console = recording_console()
        now = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)
        report = CleanupReport(run_id="run_dry", started_at=now, finished_at=now, mode=RunMode.DRY_RUN)

        CleanupReporter(console).display(report)

        output = console.export_text()
        assert "dry run" in output
        assert "Estimated storage to free: n/a" in output

    def test_display_preview(self) -> None:
        console = recording_console()
        evaluations = [
            PairEvaluation(
                kind=ResourceKind.IMAGE,
                environment=Environment.DEV,
                decisions=[
                    EvaluationDecision(make_resource("img-old"), DecisionAction.DELETE, DecisionReason.COUNT_EXCEEDED),
                    EvaluationDecision(make_resource("img-new"), DecisionAction.RETAIN, DecisionReason.WITHIN_POLICY),
                ],
            ),
            PairEvaluation(kind=ResourceKind.SNAPSHOT, environment=Environment.PROD, error="AccessDenied"),
        ]

        CleanupReporter(console).display_preview(evaluations)

        output = console.export_text()
        assert "img-old" in output
        assert "img-new" not in output
        assert "AccessDenied" in output
        assert "1 resource(s) would be deleted" in output
