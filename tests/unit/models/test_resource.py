"""Tests for ResourceDescriptor model."""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from datetime import datetime, timezone

import pytest

from src.models.resource import Environment, ResourceDescriptor, ResourceKind
from tests.fixtures.resources import NOW, make_resource


class TestResourceKindAndEnvironment:
    """Test suite for kind and environment parsing."""

    @pytest.mark.parametrize("value", ["image", "IMAGE", " Image "])
    def test_parse_kind(self, value: str) -> None:
        assert ResourceKind.parse(value) == ResourceKind.IMAGE

    def test_parse_kind_with_hyphen(self) -> None:
        assert ResourceKind.parse("deployment-record") == ResourceKind.DEPLOYMENT_RECORD

    def test_parse_unknown_kind_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown resource kind"):
            ResourceKind.parse("bucket")

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("dev", Environment.DEV),
            ("Development", Environment.DEV),
            ("STAGING", Environment.STAGING),
            ("production", Environment.PROD),
        ],
    )
    def test_parse_environment(self, value: str, expected: Environment) -> None:
        assert Environment.parse(value) == expected

    def test_parse_unknown_environment_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown environment"):
            Environment.parse("qa")


class TestResourceDescriptor:
    """Test suite for ResourceDescriptor model."""

    def test_descriptor_is_immutable(self) -> None:
        """Test descriptors cannot be modified after listing."""
        resource = make_resource()

        with pytest.raises(FrozenInstanceError):
            resource.identifier = "other"  # type: ignore[misc]

    def test_tags_normalized_to_frozenset(self) -> None:
        resource = ResourceDescriptor(
            kind=ResourceKind.OBJECT,
            identifier="bucket/key",
            created_at=NOW,
            environment=Environment.DEV,
            tags=["a", "b", "a"],  # type: ignore[arg-type]
        )

        assert resource.tags == frozenset({"a", "b"})

    def test_naive_timestamp_treated_as_utc(self) -> None:
        resource = ResourceDescriptor(
            kind=ResourceKind.IMAGE,
            identifier="img",
            created_at=datetime(2026, 1, 1, 0, 0, 0),
            environment=Environment.DEV,
        )

        assert resource.created_at.tzinfo == timezone.utc

    def test_empty_identifier_rejected(self) -> None:
        with pytest.raises(ValueError, match="identifier"):
            make_resource(identifier="")

    def test_negative_size_rejected(self) -> None:
        with pytest.raises(ValueError, match="size_bytes"):
            make_resource(size_bytes=-1)

    def test_age_days(self) -> None:
        resource = make_resource(days_old=2.5)

        assert resource.age_days(NOW) == pytest.approx(2.5)

    def test_dict_round_trip_from_iso_string(self) -> None:
        """Test from_dict parses ISO timestamps with a Z suffix."""
        resource = ResourceDescriptor.from_dict(
            {
                "kind": "snapshot",
                "environment": "prod",
                "identifier": "snap-0123",
                "created_at": "2026-02-01T08:30:00Z",
                "tags": ["nightly"],
                "size_bytes": 2048,
            }
        )

        assert resource.kind == ResourceKind.SNAPSHOT
        assert resource.created_at == datetime(2026, 2, 1, 8, 30, tzinfo=timezone.utc)
        assert ResourceDescriptor.from_dict(resource.to_dict()) == resource

    def test_scalar_tags_rejected(self) -> None:
        """Test a single tag string is not split into characters."""
        with pytest.raises(ValueError, match="tags must be a list"):
            ResourceDescriptor.from_dict(
                {
                    "kind": "object",
                    "environment": "prod",
                    "identifier": "db/dump.sql.gz",
                    "created_at": "2026-01-01T00:00:00Z",
                    "tags": "prod-backup",
                }
            )

    def test_missing_tags_default_to_empty(self) -> None:
        resource = ResourceDescriptor.from_dict(
            {"kind": "image", "environment": "dev", "identifier": "img", "created_at": "2026-01-01T00:00:00Z"}
        )

        assert resource.tags == frozenset()
