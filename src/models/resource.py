"""Resource descriptor model.

Point-in-time view of an externally managed resource as listed by a catalog.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class ResourceKind(Enum):
    """Category of managed artifact subject to cleanup."""

    IMAGE = "image"
    LOG_GROUP = "log_group"
    SNAPSHOT = "snapshot"
    OBJECT = "object"
    DEPLOYMENT_RECORD = "deployment_record"

    @classmethod
    def parse(cls, value: str) -> ResourceKind:
        """Parse a kind from its value or name, case-insensitively.

        Raises:
            ValueError: If the value names no known kind
        """
        normalized = str(value).strip().lower().replace("-", "_")
        for kind in cls:
            if kind.value == normalized:
                return kind
        raise ValueError(f"Unknown resource kind: {value}")


class Environment(Enum):
    """Deployment environment a resource belongs to."""

    DEV = "dev"
    STAGING = "staging"
    PROD = "prod"

    @classmethod
    def parse(cls, value: str) -> Environment:
        """Parse an environment from its value or name, case-insensitively.

        Accepts the common long forms ("development", "production").

        Raises:
            ValueError: If the value names no known environment
        """
        aliases = {"development": "dev", "stage": "staging", "production": "prod"}
        normalized = str(value).strip().lower()
        normalized = aliases.get(normalized, normalized)
        for env in cls:
            if env.value == normalized:
                return env
        raise ValueError(f"Unknown environment: {value}")


@dataclass(frozen=True)
class ResourceDescriptor:
    """Immutable descriptor of a resource listed from a catalog.

    Attributes:
        kind: Resource kind
        identifier: Identifier, unique within kind + environment
        created_at: Creation timestamp (UTC)
        environment: Environment the resource belongs to
        tags: Tag strings attached to the resource (e.g. "prod-backup")
        size_bytes: Storage size if the backing system reports one (optional)
        location: Container the adapter needs for deletion, such as a
            repository, bucket or region (optional)
    """

    kind: ResourceKind
    identifier: str
    created_at: datetime
    environment: Environment
    tags: frozenset = field(default_factory=frozenset)
    size_bytes: Optional[int] = None
    location: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.identifier:
            raise ValueError("identifier cannot be empty")
        if not isinstance(self.kind, ResourceKind):
            raise ValueError(f"Invalid kind type: {type(self.kind)}. Must be ResourceKind enum.")
        if not isinstance(self.environment, Environment):
            raise ValueError(f"Invalid environment type: {type(self.environment)}. Must be Environment enum.")
        if self.size_bytes is not None and self.size_bytes < 0:
            raise ValueError("size_bytes cannot be negative")

        if not isinstance(self.tags, (frozenset, set, list, tuple)):
            raise ValueError(f"tags must be a list of strings, got {type(self.tags).__name__}")

        # Frozen dataclass: normalize through object.__setattr__
        if not isinstance(self.tags, frozenset):
            object.__setattr__(self, "tags", frozenset(self.tags))
        if self.created_at.tzinfo is None:
            object.__setattr__(self, "created_at", self.created_at.replace(tzinfo=timezone.utc))

    def age_days(self, now: datetime) -> float:
        """Age of the resource in (fractional) days at ``now``."""
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return (now - self.created_at).total_seconds() / 86400

    def to_dict(self) -> dict[str, Any]:
        """Convert descriptor to dictionary representation."""
        return {
            "kind": self.kind.value,
            "identifier": self.identifier,
            "created_at": self.created_at.isoformat(),
            "environment": self.environment.value,
            "tags": sorted(self.tags),
            "size_bytes": self.size_bytes,
            "location": self.location,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResourceDescriptor:
        """Create descriptor from dictionary representation.

        ``created_at`` may be a datetime (as PyYAML loads timestamps) or an
        ISO 8601 string.

        Raises:
            ValueError: If kind, environment or timestamp is invalid
            KeyError: If a required key is missing
        """
        created_at = data["created_at"]
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at.replace("Z", "+00:00"))

        return cls(
            kind=ResourceKind.parse(data["kind"]),
            identifier=str(data["identifier"]),
            created_at=created_at,
            environment=Environment.parse(data["environment"]),
            tags=data.get("tags") or (),
            size_bytes=data.get("size_bytes"),
            location=data.get("location"),
        )
