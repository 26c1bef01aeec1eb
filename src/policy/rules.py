"""Retention rule set loading and lookup.

Rules are read once per run from a human-edited YAML file::

    defaults:
      protected_patterns: ["keep-*"]
    rules:
      - kind: image
        environment: dev
        max_count: 10
        max_age_days: 30
        protected_patterns: ["latest", "release-*"]
"""

from __future__ import annotations

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Optional, Union

import yaml

from src.errors import ConfigInvalid, NoRuleDefined
from src.models.resource import Environment, ResourceKind
from src.models.retention_rule import RetentionRule

logger = logging.getLogger(__name__)


class RuleSet:
    """Immutable set of retention rules keyed by (kind, environment).

    Attributes:
        rules: Read-only mapping of (kind, environment) to rule
    """

    def __init__(self, rules: list[RetentionRule]) -> None:
        """Initialize rule set.

        Args:
            rules: Retention rules, at most one per (kind, environment)

        Raises:
            ConfigInvalid: If a rule is invalid or a pair is defined twice
        """
        by_key: dict[tuple[ResourceKind, Environment], RetentionRule] = {}
        for rule in rules:
            rule.validate()
            if rule.key in by_key:
                raise ConfigInvalid(
                    f"Duplicate retention rule for {rule.kind.value}/{rule.environment.value}"
                )
            by_key[rule.key] = rule

        self.rules = MappingProxyType(by_key)

    def __len__(self) -> int:
        return len(self.rules)

    def rule_for(self, kind: ResourceKind, environment: Environment) -> RetentionRule:
        """Look up the rule for a (kind, environment) pair.

        Raises:
            NoRuleDefined: If no rule exists for the pair
        """
        try:
            return self.rules[(kind, environment)]
        except KeyError:
            raise NoRuleDefined(kind.value, environment.value)

    def pairs(self) -> list[tuple[ResourceKind, Environment]]:
        """Configured (kind, environment) pairs in deterministic order."""
        return sorted(self.rules, key=pair_sort_key)

    def to_dict(self) -> dict[str, Any]:
        return {"rules": [self.rules[pair].to_dict() for pair in self.pairs()]}

    @classmethod
    def from_dict(cls, data: Any) -> RuleSet:
        """Build a rule set from parsed configuration.

        Raises:
            ConfigInvalid: If the configuration is malformed
        """
        if not isinstance(data, dict):
            raise ConfigInvalid("Rule configuration must be a mapping with a 'rules' list")

        entries = data.get("rules")
        if not isinstance(entries, list):
            raise ConfigInvalid("Rule configuration requires a 'rules' list")

        defaults = data.get("defaults") or {}
        if not isinstance(defaults, dict):
            raise ConfigInvalid("'defaults' must be a mapping")
        default_patterns = defaults.get("protected_patterns") or []
        if not isinstance(default_patterns, list):
            raise ConfigInvalid("defaults.protected_patterns must be a list")

        return cls([RetentionRule.from_dict(entry, default_patterns) for entry in entries])

    @classmethod
    def load(cls, path: Union[str, Path]) -> RuleSet:
        """Load and validate a rule set from a YAML file.

        Args:
            path: Path to rules YAML

        Returns:
            Validated RuleSet

        Raises:
            ConfigInvalid: If the file cannot be read or is malformed
        """
        rules_path = Path(path)
        try:
            with open(rules_path, "r") as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigInvalid(f"Cannot read rule file {rules_path}: {e}")
        except yaml.YAMLError as e:
            raise ConfigInvalid(f"Invalid YAML in rule file {rules_path}: {e}")

        rule_set = cls.from_dict(data)
        logger.debug(f"Loaded {len(rule_set)} retention rules from {rules_path}")
        return rule_set


def pair_sort_key(pair: tuple[ResourceKind, Environment]) -> tuple[int, int]:
    """Sort key ordering pairs by enum declaration order."""
    kind, environment = pair
    return (list(ResourceKind).index(kind), list(Environment).index(environment))


def load_rules(path: Optional[Union[str, Path]]) -> RuleSet:
    """Load rules from ``path``; a missing path yields an empty rule set."""
    if path is None:
        logger.warning("No rule file configured; every resource will be retained")
        return RuleSet([])
    return RuleSet.load(path)
