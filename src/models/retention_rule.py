"""Retention rule model.

Declarative retention policy for a single (kind, environment) pair.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from typing import Any, Optional

from src.errors import ConfigInvalid
from src.models.resource import Environment, ResourceDescriptor, ResourceKind

GLOB_CHARACTERS = ("*", "?", "[")


def pattern_matches(pattern: str, value: str) -> bool:
    """Match a protected pattern against a value.

    Patterns containing glob metacharacters are matched with fnmatch
    (case-sensitive); anything else is a prefix match.
    """
    if any(char in pattern for char in GLOB_CHARACTERS):
        return fnmatchcase(value, pattern)
    return value.startswith(pattern)


@dataclass(frozen=True)
class RetentionRule:
    """Retention rule entity.

    Limits the age and/or count of resources of one kind in one environment.
    A resource matching any protected pattern (tested against its identifier
    and each of its tags) is exempt from deletion.

    Validation rules:
        - max_age_days must be >= 0 if provided
        - max_count must be >= 0 if provided
        - protected_patterns must be non-empty strings

    Attributes:
        kind: Resource kind this rule applies to
        environment: Environment this rule applies to
        max_age_days: Maximum resource age in days (optional)
        max_count: Maximum number of unprotected resources to keep (optional)
        protected_patterns: Ordered glob/prefix patterns exempting resources
    """

    kind: ResourceKind
    environment: Environment
    max_age_days: Optional[int] = None
    max_count: Optional[int] = None
    protected_patterns: tuple = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not isinstance(self.protected_patterns, tuple):
            object.__setattr__(self, "protected_patterns", tuple(self.protected_patterns))

    @property
    def key(self) -> tuple[ResourceKind, Environment]:
        """The (kind, environment) pair this rule is keyed by."""
        return (self.kind, self.environment)

    def validate(self) -> bool:
        """Validate rule invariants.

        Returns:
            True if validation passes

        Raises:
            ConfigInvalid: If any validation rule fails
        """
        where = f"{self.kind.value}/{self.environment.value}"

        for name in ("max_age_days", "max_count"):
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigInvalid(f"Rule {where}: {name} must be an integer, got {value!r}")
            if value < 0:
                raise ConfigInvalid(f"Rule {where}: {name} cannot be negative")

        for pattern in self.protected_patterns:
            if not isinstance(pattern, str) or not pattern:
                raise ConfigInvalid(f"Rule {where}: protected patterns must be non-empty strings, got {pattern!r}")

        return True

    def protecting_pattern(self, resource: ResourceDescriptor) -> Optional[str]:
        """Return the first protected pattern matching the resource.

        Patterns are tested in configured order; for each pattern the
        identifier is tested first, then the tags in sorted order.

        Returns:
            Matching pattern, or None if the resource is not protected
        """
        values = [resource.identifier, *sorted(resource.tags)]
        for pattern in self.protected_patterns:
            if any(pattern_matches(pattern, value) for value in values):
                return pattern
        return None

    def is_protected(self, resource: ResourceDescriptor) -> bool:
        """Check whether any protected pattern matches the resource."""
        return self.protecting_pattern(resource) is not None

    def to_dict(self) -> dict[str, Any]:
        """Convert rule to dictionary representation."""
        return {
            "kind": self.kind.value,
            "environment": self.environment.value,
            "max_age_days": self.max_age_days,
            "max_count": self.max_count,
            "protected_patterns": list(self.protected_patterns),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], default_patterns: Optional[list[str]] = None) -> RetentionRule:
        """Create and validate a rule from its configuration mapping.

        Args:
            data: Rule mapping (kind, environment, max_age_days, max_count,
                protected_patterns)
            default_patterns: Patterns prepended to the rule's own patterns

        Returns:
            Validated RetentionRule

        Raises:
            ConfigInvalid: If the mapping is malformed
        """
        if not isinstance(data, dict):
            raise ConfigInvalid(f"Rule entry must be a mapping, got {type(data).__name__}")

        unknown = set(data) - {"kind", "environment", "max_age_days", "max_count", "protected_patterns"}
        if unknown:
            raise ConfigInvalid(f"Unknown rule keys: {', '.join(sorted(unknown))}")

        try:
            kind = ResourceKind.parse(data["kind"])
            environment = Environment.parse(data["environment"])
        except KeyError as e:
            raise ConfigInvalid(f"Rule entry missing required key {e}")
        except ValueError as e:
            raise ConfigInvalid(str(e))

        patterns = data.get("protected_patterns") or []
        if not isinstance(patterns, list):
            raise ConfigInvalid(f"Rule {kind.value}/{environment.value}: protected_patterns must be a list")

        rule = cls(
            kind=kind,
            environment=environment,
            max_age_days=data.get("max_age_days"),
            max_count=data.get("max_count"),
            protected_patterns=tuple([*(default_patterns or []), *patterns]),
        )
        rule.validate()
        return rule
