# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Comprehension depth classifier.

Each event lands in exactly one bucket:

- surface: rote method or a short explanation
- deep: a long explanation that draws an analogy or equivalence
- strategic: method-selection language together with a causal connective
- surface: anything else

Correct events add a fixed increment to their bucket's running total.
Percentages are totals divided by the event count, capped at 100.
"""

from dataclasses import replace

from src.core.learner_state.constants import DepthBucket
from src.core.learner_state.estimators.base import BaseEstimator
from src.core.learner_state.models import ComprehensionDepth, LearningEvent
from src.core.learner_state.policy import ComprehensionPolicy
from src.core.learner_state.signals import clamp, contains_any, round_half_up
from src.core.learner_state.state import ComprehensionTotals, EstimationContext


class ComprehensionClassifier(BaseEstimator):
    """Buckets events by depth of understanding and accumulates totals."""

    policy_class = ComprehensionPolicy

    @property
    def name(self) -> str:
        """Return the estimator name."""
        return "comprehension_depth"

    def classify(self, event: LearningEvent) -> DepthBucket:
        """Classify one event into a depth bucket.

        Args:
            event: Event to classify.

        Returns:
            The single bucket the event belongs to.
        """
        policy = self._policy
        explanation = event.explanation_text
        method = event.solution_method or ""

        if method.lower() in {m.lower() for m in policy.rote_methods}:
            return DepthBucket.SURFACE
        if len(explanation) < policy.surface_max_length:
            return DepthBucket.SURFACE

        if len(explanation) > policy.deep_min_length and contains_any(
            explanation, policy.equivalence_terms
        ):
            return DepthBucket.DEEP

        selects_method = contains_any(method, policy.method_selection_terms) or contains_any(
            explanation, policy.method_selection_terms
        )
        if selects_method and contains_any(explanation, policy.causal_terms):
            return DepthBucket.STRATEGIC

        return DepthBucket.SURFACE

    def accumulate(
        self, totals: ComprehensionTotals, event: LearningEvent
    ) -> ComprehensionTotals:
        """Fold one event into the running totals.

        Args:
            totals: Totals before the event.
            event: Event to add.

        Returns:
            New totals; the input is not modified.
        """
        bucket = self.classify(event)
        increment = self._policy.bucket_increment if event.correct else 0

        if bucket == DepthBucket.DEEP:
            return replace(
                totals,
                deep=totals.deep + increment,
                connections=totals.connections + 1,
            )
        if bucket == DepthBucket.STRATEGIC:
            return replace(totals, strategic=totals.strategic + increment)
        return replace(totals, surface=totals.surface + increment)

    def summarize(self, totals: ComprehensionTotals, event_count: int) -> ComprehensionDepth:
        """Turn running totals into percentages and transfer ability.

        Args:
            totals: Accumulated totals.
            event_count: Events accumulated so far.

        Returns:
            ComprehensionDepth for the session.
        """
        if event_count <= 0:
            return ComprehensionDepth()

        policy = self._policy
        surface = self._percentage(totals.surface, event_count)
        strategic = self._percentage(totals.strategic, event_count)
        deep = self._percentage(totals.deep, event_count)

        transfer = round_half_up(
            policy.transfer_scale
            * (
                policy.transfer_deep_weight * deep
                + policy.transfer_strategic_weight * strategic
                + policy.transfer_connection_weight * totals.connections
            )
        )

        return ComprehensionDepth(
            surface=surface,
            strategic=strategic,
            deep=deep,
            connections=totals.connections,
            transfer_ability=int(clamp(transfer, 0, 100)),
        )

    def estimate(self, context: EstimationContext) -> tuple[ComprehensionTotals, ComprehensionDepth]:
        """Accumulate the current event and summarize the session."""
        totals = self.accumulate(context.comprehension, context.event)
        return totals, self.summarize(totals, len(context.history))

    @staticmethod
    def _percentage(total: int, event_count: int) -> int:
        return int(min(round_half_up(total / event_count), 100))
