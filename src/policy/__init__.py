"""Retention policy module.

Classes:
    RuleSet: Immutable (kind, environment) -> RetentionRule mapping
    PolicyEvaluator: Pure evaluation of resources against a rule
"""

from __future__ import annotations

from src.policy.evaluator import PolicyEvaluator
from src.policy.rules import RuleSet

__all__ = [
    "PolicyEvaluator",
    "RuleSet",
]
