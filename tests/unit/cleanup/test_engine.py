"""Tests for CleanupEngine class.

Test coverage for pair orchestration, fail-safe defaults, partial failure,
cancellation and report publishing.
"""

from __future__ import annotations

import threading
from types import MappingProxyType
from unittest.mock import Mock, patch

import pytest

from src.catalog.memory import InMemoryCatalog
from src.cleanup.engine import CleanupEngine
from src.cleanup.executor import CleanupExecutor
from src.errors import ConfigInvalid
from src.models.cleanup_report import RunMode, RunStatus
from src.models.decision import DecisionAction, DecisionReason
from src.models.resource import Environment, ResourceKind
from src.models.retention_rule import RetentionRule
from src.policy.rules import RuleSet
from tests.fixtures.resources import (
    NOW,
    CountingCatalog,
    ScriptedCatalog,
    images_by_age,
    make_resource,
    transient,
    unavailable,
)


def rule(kind=ResourceKind.IMAGE, environment=Environment.DEV, **kwargs) -> RetentionRule:
    return RetentionRule(kind=kind, environment=environment, **kwargs)


class SlowCatalog(ScriptedCatalog):
    """Catalog whose first listing blocks until released or timed out."""

    def __init__(self, listings: dict) -> None:
        super().__init__(listings=listings)
        self.release = threading.Event()
        self.listed: list = []

    def list(self, kind, environment):
        self.listed.append((kind, environment))
        if len(self.listed) == 1:
            self.release.wait(0.5)
        return super().list(kind, environment)


class TestCleanupEngine:
    """Test suite for CleanupEngine class."""

    def test_full_cycle_enforces_max_count(self) -> None:
        """Test at most max_count unprotected resources remain after a run."""
        catalog = InMemoryCatalog(images_by_age(12))
        engine = CleanupEngine(catalog, RuleSet([rule(max_count=10)]))

        report = engine.run(now=NOW)

        remaining = catalog.list(ResourceKind.IMAGE, Environment.DEV)
        assert len(remaining) == 10
        assert {r.identifier for r in catalog.deleted} == {"img-11", "img-12"}
        assert report.status == RunStatus.COMPLETED
        assert report.per_kind_summary["image"].deleted == 2
        assert report.per_kind_summary["image"].skipped == 10

    @patch("src.cleanup.executor.time.sleep")
    def test_one_exhausted_delete_is_partial_success(self, mock_sleep: Mock) -> None:
        """Test 4 of 5 deletions succeed and the run is reported partial."""
        resources = images_by_age(5)
        catalog = ScriptedCatalog(
            listings={(ResourceKind.IMAGE, Environment.DEV): resources},
            failures={"img-03": [transient()] * 3},
        )
        engine = CleanupEngine(catalog, RuleSet([rule(max_count=0)]))

        report = engine.run(now=NOW)

        assert report.per_kind_summary["image"].deleted == 4
        assert report.per_kind_summary["image"].failed == 1
        assert report.status == RunStatus.PARTIAL
        assert report.is_successful
        assert [e.identifier for e in report.errors] == ["img-03"]

    def test_catalog_unavailable_aborts_only_that_pair(self) -> None:
        catalog = ScriptedCatalog(
            listings={
                (ResourceKind.IMAGE, Environment.DEV): images_by_age(3),
                (ResourceKind.SNAPSHOT, Environment.DEV): unavailable("ec2 endpoint unreachable"),
            }
        )
        rules = RuleSet([rule(max_count=1), rule(kind=ResourceKind.SNAPSHOT, max_count=1)])

        report = CleanupEngine(catalog, rules).run(now=NOW)

        assert sorted(catalog.delete_calls) == ["img-02", "img-03"]
        assert report.status == RunStatus.PARTIAL
        assert report.errors[-1].kind == "snapshot"
        assert report.errors[-1].identifier is None
        assert "unreachable" in report.errors[-1].message

    def test_all_pairs_unavailable_fails_run(self) -> None:
        catalog = ScriptedCatalog(listings={(ResourceKind.IMAGE, Environment.DEV): unavailable()})

        report = CleanupEngine(catalog, RuleSet([rule(max_count=1)])).run(now=NOW)

        assert report.status == RunStatus.FAILED
        assert not report.is_successful

    def test_missing_rule_retains_everything(self) -> None:
        """Test a pair without a rule is listed and fully retained."""
        catalog = ScriptedCatalog(listings={(ResourceKind.IMAGE, Environment.PROD): images_by_age(4)})
        engine = CleanupEngine(catalog, RuleSet([rule(max_count=0)]))

        report = engine.run(kinds=[ResourceKind.IMAGE], environments=[Environment.PROD], now=NOW)

        assert catalog.delete_calls == []
        assert report.per_kind_summary["image"].skipped == 4
        assert report.status == RunStatus.COMPLETED

    def test_invalid_rules_abort_before_listing(self) -> None:
        catalog = ScriptedCatalog(listings={(ResourceKind.IMAGE, Environment.DEV): images_by_age(3)})
        rule_set = RuleSet([])
        bad_rule = rule(max_count=-1)
        rule_set.rules = MappingProxyType({bad_rule.key: bad_rule})

        with pytest.raises(ConfigInvalid):
            CleanupEngine(catalog, rule_set).run(now=NOW)

        assert catalog.delete_calls == []

    def test_dry_run_deletes_nothing(self) -> None:
        catalog = InMemoryCatalog(images_by_age(5))
        engine = CleanupEngine(catalog, RuleSet([rule(max_count=2)]))

        report = engine.run(dry_run=True, now=NOW)

        assert len(catalog) == 5
        assert report.mode == RunMode.DRY_RUN
        assert report.per_kind_summary["image"].planned == 3

    def test_sink_failure_does_not_invalidate_run(self) -> None:
        failing_sink = Mock()
        failing_sink.publish.side_effect = OSError("disk full")
        good_sink = Mock()
        catalog = InMemoryCatalog(images_by_age(3))
        engine = CleanupEngine(catalog, RuleSet([rule(max_count=1)]), sinks=[failing_sink, good_sink])

        report = engine.run(now=NOW)

        assert report.status == RunStatus.COMPLETED
        assert len(catalog) == 1
        good_sink.publish.assert_called_once_with(report)

    def test_timeout_cancels_queued_pairs(self) -> None:
        """Test a timed-out run skips queued work and lets in-flight work finish."""
        catalog = SlowCatalog(
            listings={
                (ResourceKind.IMAGE, Environment.DEV): images_by_age(3),
                (ResourceKind.IMAGE, Environment.PROD): images_by_age(3, environment=Environment.PROD),
            }
        )
        rules = RuleSet([rule(max_count=0), rule(environment=Environment.PROD, max_count=0)])
        engine = CleanupEngine(catalog, rules, max_parallel_pairs=1)

        report = engine.run(timeout=0.05, now=NOW)

        assert report.status == RunStatus.CANCELLED
        assert catalog.delete_calls == []
        assert catalog.listed == [(ResourceKind.IMAGE, Environment.DEV)]
        messages = [e.message for e in report.errors]
        assert messages.count("cancelled") == 3
        assert "cancelled before processing" in messages

    def test_results_merged_in_pair_order(self) -> None:
        catalog = InMemoryCatalog(
            [
                make_resource("snap-1", kind=ResourceKind.SNAPSHOT, days_old=10),
                make_resource("img-1", days_old=10),
                make_resource("img-p", days_old=10, environment=Environment.PROD),
            ]
        )
        rules = RuleSet(
            [
                rule(kind=ResourceKind.SNAPSHOT, max_age_days=1),
                rule(environment=Environment.PROD, max_age_days=1),
                rule(max_age_days=1),
            ]
        )

        report = CleanupEngine(catalog, rules).run(now=NOW)

        assert list(report.per_kind_summary) == ["image", "snapshot"]
        assert report.deleted_count == 3

    def test_preview_returns_decisions_without_deleting(self) -> None:
        catalog = InMemoryCatalog(images_by_age(4) + [make_resource("latest", days_old=100)])
        engine = CleanupEngine(catalog, RuleSet([rule(max_count=2, protected_patterns=("latest",))]))

        evaluations = engine.preview(now=NOW)

        assert len(evaluations) == 1
        decisions = evaluations[0].decisions
        assert decisions[0].reason == DecisionReason.PROTECTED
        assert [d.action for d in decisions].count(DecisionAction.DELETE) == 2
        assert len(catalog) == 5

    def test_resolve_pairs(self) -> None:
        engine = CleanupEngine(InMemoryCatalog(), RuleSet([rule(), rule(kind=ResourceKind.SNAPSHOT)]))

        assert engine.resolve_pairs() == [
            (ResourceKind.IMAGE, Environment.DEV),
            (ResourceKind.SNAPSHOT, Environment.DEV),
        ]
        assert engine.resolve_pairs(kinds=[ResourceKind.OBJECT]) == [
            (ResourceKind.OBJECT, Environment.DEV),
            (ResourceKind.OBJECT, Environment.STAGING),
            (ResourceKind.OBJECT, Environment.PROD),
        ]

    def test_custom_executor_is_used(self) -> None:
        catalog = InMemoryCatalog(images_by_age(2))
        executor = CleanupExecutor(catalog, max_workers=1)

        engine = CleanupEngine(catalog, RuleSet([rule(max_count=1)]), executor=executor)

        assert engine.executor is executor
        assert engine.run(now=NOW).deleted_count == 1

    def test_parallel_pairs_share_per_kind_delete_bound(self) -> None:
        """Test environments of one kind never exceed max_workers concurrent deletes."""
        listings = {(ResourceKind.IMAGE, env): images_by_age(10, environment=env) for env in Environment}
        catalog = CountingCatalog(listings)
        rules = RuleSet([rule(environment=env, max_count=0) for env in Environment])
        engine = CleanupEngine(
            catalog,
            rules,
            executor=CleanupExecutor(catalog, max_workers=5),
            max_parallel_pairs=3,
        )

        report = engine.run(now=NOW)

        assert report.per_kind_summary["image"].deleted == 30
        assert catalog.peak[ResourceKind.IMAGE] <= 5
