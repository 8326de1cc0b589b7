# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Cognitive load estimator.

Computes a 0-100 load score from the current response time, recent
accuracy, hesitation and error counts, and how long the session has run:

    time       = min(response_ms / 30000, 1)
    accuracy   = max(0, (1 - accuracy) * 1.5)
    hesitation = hesitations * 0.1
    error      = errors * 0.15
    fatigue    = min(elapsed_ms / 3600000, 0.3)
    load       = clamp(round(50 * sum), 0, 100)

The arithmetic runs in Decimal so identical inputs always produce the
same integer, including on .5 boundaries.
"""

from decimal import Decimal

from src.core.learner_state.estimators.base import BaseEstimator
from src.core.learner_state.models import CognitiveLoadReading, OverloadFlag
from src.core.learner_state.policy import CognitiveLoadPolicy
from src.core.learner_state.signals import clamp_score, mean, to_decimal, trailing
from src.core.learner_state.state import EstimationContext


class CognitiveLoadEstimator(BaseEstimator):
    """Estimates cognitive load and overload diagnostics for one event.

    Accuracy is the rolling mean over the last `accuracy_window` events
    (current one included), so a single slip does not read as collapse.
    """

    policy_class = CognitiveLoadPolicy

    @property
    def name(self) -> str:
        """Return the estimator name."""
        return "cognitive_load"

    def estimate(self, context: EstimationContext) -> CognitiveLoadReading:
        """Estimate load for the context's current event."""
        window = trailing(context.accuracy, self._policy.accuracy_window)
        return self.compute(
            response_time_ms=context.event.response_time_ms,
            accuracy=mean(window, default=1.0),
            hesitation_count=context.event.hesitations,
            error_count=len(context.event.error_types),
            elapsed_ms=context.elapsed_ms,
        )

    def compute(
        self,
        *,
        response_time_ms: int,
        accuracy: float,
        hesitation_count: int,
        error_count: int,
        elapsed_ms: int,
    ) -> CognitiveLoadReading:
        """Apply the load formula to explicit inputs.

        Args:
            response_time_ms: Time taken on the current problem.
            accuracy: Accuracy in [0, 1].
            hesitation_count: Observed hesitations.
            error_count: Distinct error types observed.
            elapsed_ms: Session time elapsed.

        Returns:
            Load reading with any fired overload flags.
        """
        policy = self._policy
        one = Decimal(1)

        time_factor = min(
            Decimal(response_time_ms) / Decimal(policy.reference_response_ms), one
        )
        accuracy_factor = max(
            Decimal(0), (one - to_decimal(accuracy)) * to_decimal(policy.accuracy_weight)
        )
        hesitation_factor = hesitation_count * to_decimal(policy.hesitation_weight)
        error_factor = error_count * to_decimal(policy.error_weight)
        fatigue_factor = min(
            Decimal(elapsed_ms) / Decimal(policy.fatigue_reference_ms),
            to_decimal(policy.fatigue_cap),
        )

        total = time_factor + accuracy_factor + hesitation_factor + error_factor + fatigue_factor
        level = clamp_score(policy.scale * total)

        return CognitiveLoadReading(
            level=level,
            optimal_range=policy.optimal_range,
            overload_flags=self._overload_flags(level, accuracy, hesitation_count, elapsed_ms),
        )

    def _overload_flags(
        self,
        level: int,
        accuracy: float,
        hesitation_count: int,
        elapsed_ms: int,
    ) -> tuple[OverloadFlag, ...]:
        policy = self._policy
        flags: list[OverloadFlag] = []

        if level > policy.overload_threshold:
            flags.append(OverloadFlag(indicator="response_time_spike", suggestion="lower_difficulty"))
        if accuracy < policy.accuracy_collapse_threshold:
            flags.append(OverloadFlag(indicator="accuracy_collapse", suggestion="review_basics"))
        if hesitation_count > policy.hesitation_threshold:
            flags.append(OverloadFlag(indicator="repeated_hesitation", suggestion="add_hints"))
        if elapsed_ms > policy.fatigue_window_ms:
            flags.append(OverloadFlag(indicator="fatigue_window", suggestion="suggest_break"))

        return tuple(flags)
