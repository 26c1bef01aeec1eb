"""Policy evaluation of listed resources against a retention rule.

Evaluation is a pure function of (resources, rule, now): no I/O and no state
carried between calls, so repeated calls with the same inputs return
identical decisions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from src.models.decision import DecisionAction, DecisionReason, EvaluationDecision
from src.models.resource import ResourceDescriptor
from src.models.retention_rule import RetentionRule


class PolicyEvaluator:
    """Evaluator for retention rules.

    Order of evaluation:
        1. Resources matching a protected pattern are retained (PROTECTED).
        2. Remaining candidates are ranked newest first, identifier
           ascending on equal timestamps.
        3. Candidates past ``max_count`` in that ranking violate the count.
        4. Candidates older than ``max_age_days`` violate the age limit.
        5. Age violations are reported before count violations.
    """

    def evaluate(
        self,
        resources: Sequence[ResourceDescriptor],
        rule: RetentionRule,
        now: datetime,
    ) -> list[EvaluationDecision]:
        """Evaluate resources of one (kind, environment) pair.

        Args:
            resources: Resources listed for the rule's pair
            rule: Retention rule for the pair
            now: Reference time for age calculation

        Returns:
            Decisions for every resource: protected resources first (input
            order), then candidates in ranking order
        """
        protected: list[ResourceDescriptor] = []
        candidates: list[ResourceDescriptor] = []

        for resource in resources:
            if rule.is_protected(resource):
                protected.append(resource)
            else:
                candidates.append(resource)

        decisions = [
            EvaluationDecision(resource=r, action=DecisionAction.RETAIN, reason=DecisionReason.PROTECTED)
            for r in protected
        ]

        ranked = self.rank(candidates)
        for position, resource in enumerate(ranked):
            reason = self._violation(resource, position, rule, now)
            if reason is None:
                decisions.append(
                    EvaluationDecision(
                        resource=resource, action=DecisionAction.RETAIN, reason=DecisionReason.WITHIN_POLICY
                    )
                )
            else:
                decisions.append(EvaluationDecision(resource=resource, action=DecisionAction.DELETE, reason=reason))

        return decisions

    def retain_all(self, resources: Sequence[ResourceDescriptor]) -> list[EvaluationDecision]:
        """Fail-safe decisions for a pair without a rule: retain everything."""
        return [
            EvaluationDecision(resource=r, action=DecisionAction.RETAIN, reason=DecisionReason.NO_RULE)
            for r in resources
        ]

    @staticmethod
    def rank(resources: Sequence[ResourceDescriptor]) -> list[ResourceDescriptor]:
        """Rank resources newest first, identifier ascending on ties."""
        by_identifier = sorted(resources, key=lambda r: r.identifier)
        # Stable sort keeps identifier order among equal timestamps
        return sorted(by_identifier, key=lambda r: r.created_at, reverse=True)

    def _violation(
        self,
        resource: ResourceDescriptor,
        position: int,
        rule: RetentionRule,
        now: datetime,
    ) -> Optional[DecisionReason]:
        if rule.max_age_days is not None and resource.age_days(now) > rule.max_age_days:
            return DecisionReason.AGE_EXCEEDED
        if rule.max_count is not None and position >= rule.max_count:
            return DecisionReason.COUNT_EXCEEDED
        return None
