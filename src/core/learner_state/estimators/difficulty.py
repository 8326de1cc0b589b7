# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Adaptive difficulty controller.

Targets the learner's Zone of Proximal Development (ZPD):

- Ability: round(10 * mean accuracy over the last N events)
- ZPD: [max(1, ability - 1), min(10, ability + 2)]
- Optimal: ability + 1, clamped into the ZPD
- Target: optimal +/- 0.5 when the window is clearly improving or
  declining, clamped into the ZPD

How far difficulty may move per event (adjustment rate) grows with
processing speed and answer consistency, capped at 0.3.

A separate optimiser reacts to the current cognitive load with a
complexity change, a scaffolding level and support strategies.
"""

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

from src.core.learner_state.estimators.base import BaseEstimator
from src.core.learner_state.models import AdaptivePath, CognitiveLoadReading, LearnerProfile
from src.core.learner_state.policy import DifficultyPolicy
from src.core.learner_state.signals import (
    clamp,
    consistency,
    improvement_rate,
    mean,
    round_half_up,
    round_to,
    trailing,
)
from src.core.learner_state.state import EstimationContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ZoneEstimate:
    """ZPD window and target difficulty for a window of accuracies."""

    ability: int
    lower: int
    upper: int
    optimal: int
    target: float
    improvement: float


@dataclass(frozen=True)
class ComplexityPlan:
    """Complexity and scaffolding chosen for the current load."""

    complexity: int
    scaffolding_level: int
    strategies: tuple[str, ...]


class AdaptiveDifficultyController(BaseEstimator):
    """Chooses target difficulty, ZPD, adjustment rate and scaffolding."""

    policy_class = DifficultyPolicy

    @property
    def name(self) -> str:
        """Return the estimator name."""
        return "adaptive_difficulty"

    # =========================================================================
    # ZPD
    # =========================================================================

    def zone_for_ability(self, ability: int, improvement: float = 0.0) -> ZoneEstimate:
        """Build the ZPD window around an ability level.

        Args:
            ability: Ability on the 0-10 scale.
            improvement: Improvement rate over the window.

        Returns:
            ZoneEstimate with the target clamped into the window.
        """
        p = self._policy
        lower = max(1, ability - p.zpd_below)
        upper = min(10, ability + p.zpd_above)
        optimal = int(clamp(ability + 1, lower, upper))

        target = float(optimal)
        if improvement > p.improvement_threshold:
            target += p.target_step
        elif improvement < -p.improvement_threshold:
            target -= p.target_step

        return ZoneEstimate(
            ability=ability,
            lower=lower,
            upper=upper,
            optimal=optimal,
            target=clamp(target, lower, upper),
            improvement=improvement,
        )

    def zone(self, accuracy: Sequence[float]) -> ZoneEstimate:
        """Estimate the ZPD from the trailing accuracy window."""
        window = trailing(accuracy, self._policy.window_size)
        ability = round_half_up(10 * mean(window))
        return self.zone_for_ability(ability, improvement_rate(window))

    # =========================================================================
    # Adjustment rate
    # =========================================================================

    def adjustment_rate(
        self,
        accuracy: Sequence[float],
        response_time_ms: Sequence[int],
        context: EstimationContext | None = None,
    ) -> float:
        """How far difficulty may move per event, as a fraction of the scale.

        A zero mean response time makes processing speed undefined; its
        bonus then falls back to 0 and the anomaly is recorded on the
        context when one is given.
        """
        p = self._policy
        window_acc = trailing(accuracy, p.window_size)
        window_rt = trailing(response_time_ms, p.window_size)

        speed_bonus = 0.0
        mean_rt = mean(window_rt)
        if window_rt and mean_rt > 0:
            speed = p.reference_response_ms / mean_rt
            speed_bonus = (speed - 1) * p.speed_bonus_weight
        elif window_rt:
            logger.debug("Zero mean response time, speed bonus set to 0")
            if context is not None:
                context.record_anomaly(self.name, "zero mean response time; speed bonus set to 0")

        consistency_bonus = consistency(window_acc) * p.consistency_bonus_weight
        rate = p.base_adjustment_rate + speed_bonus + consistency_bonus

        if not math.isfinite(rate):
            if context is not None:
                context.record_anomaly(self.name, "non-finite adjustment rate; base rate used")
            rate = p.base_adjustment_rate

        return round_to(clamp(rate, 0.0, p.max_adjustment_rate), 4)

    # =========================================================================
    # Complexity / scaffolding
    # =========================================================================

    def optimize_complexity(self, load: int, current_difficulty: int) -> ComplexityPlan:
        """React to the current cognitive load.

        Args:
            load: Current cognitive load (0-100).
            current_difficulty: Difficulty of the problem just answered.

        Returns:
            ComplexityPlan with complexity clamped to [1, 10].
        """
        p = self._policy
        if load > p.high_load:
            return ComplexityPlan(
                complexity=int(clamp(current_difficulty + p.overload_complexity_delta, 1, 10)),
                scaffolding_level=3,
                strategies=("chunking", "visual_aids", "progressive_disclosure"),
            )
        if load < p.low_load:
            return ComplexityPlan(
                complexity=int(clamp(current_difficulty + p.underload_complexity_delta, 1, 10)),
                scaffolding_level=1,
                strategies=("compound_problems", "self_explanation_prompts"),
            )
        return ComplexityPlan(
            complexity=int(clamp(current_difficulty, 1, 10)),
            scaffolding_level=2,
            strategies=("metacognitive_prompts", "relational_linking"),
        )

    def recommended_breaks(self, load: int, session_length: str) -> tuple[int, ...]:
        """Break schedule in minutes for the current load and preference."""
        p = self._policy
        base = p.break_minutes.get(session_length, p.break_minutes.get("medium", 25))
        if load > p.break_high_load:
            return tuple(p.high_load_breaks)
        if load < p.break_low_load:
            return (base,)
        return tuple(p.balanced_breaks)

    def _risk_factors(self, target: float, load: int) -> tuple[str, ...]:
        p = self._policy
        risks: list[str] = []
        if target > p.frustration_risk_above:
            risks.append("frustration_risk")
        if target < p.boredom_risk_below:
            risks.append("boredom_risk")
        if load > p.high_load:
            risks.append("cognitive_overload")
        return tuple(risks)

    @staticmethod
    def _justification(zone: ZoneEstimate, window_mean: float) -> str:
        if zone.improvement > 0:
            trend = "improving"
        elif zone.improvement < 0:
            trend = "declining"
        else:
            trend = "steady"
        return (
            f"ability {zone.ability} from recent accuracy {window_mean:.2f} ({trend}); "
            f"target {zone.target:g} within ZPD [{zone.lower}, {zone.upper}]"
        )

    # =========================================================================
    # Entry points
    # =========================================================================

    def estimate(
        self,
        context: EstimationContext,
        cognitive_load: CognitiveLoadReading | None = None,
    ) -> AdaptivePath:
        """Plan the adaptive path for the context's current event.

        Args:
            context: Session view with the current event appended.
            cognitive_load: Load reading for the event. When omitted a
                load of 50 (balanced support) is assumed.

        Returns:
            AdaptivePath whose recommended difficulty lies inside the ZPD.
        """
        load = cognitive_load.level if cognitive_load is not None else 50

        zone = self.zone(context.accuracy)
        plan = self.optimize_complexity(load, context.event.difficulty)
        window_mean = mean(trailing(context.accuracy, self._policy.window_size))

        return AdaptivePath(
            recommended_difficulty=zone.target,
            zpd=(zone.lower, zone.upper),
            scaffolding_level=plan.scaffolding_level,
            adjustment_rate=self.adjustment_rate(
                context.accuracy, context.response_time_ms, context
            ),
            complexity=plan.complexity,
            strategies=plan.strategies,
            recommended_breaks=self.recommended_breaks(
                load, context.profile.preferences.session_length
            ),
            justification=self._justification(zone, window_mean),
            risk_factors=self._risk_factors(zone.target, load),
        )

    def initial_path(self, profile: LearnerProfile, subject: str) -> AdaptivePath:
        """Adaptive path before any event, from the profile's proficiency."""
        level = profile.level_for(subject).current
        zone = self.zone_for_ability(level)
        plan = ComplexityPlan(
            complexity=int(clamp(level, 1, 10)),
            scaffolding_level=2,
            strategies=("metacognitive_prompts", "relational_linking"),
        )
        return AdaptivePath(
            recommended_difficulty=zone.target,
            zpd=(zone.lower, zone.upper),
            scaffolding_level=plan.scaffolding_level,
            adjustment_rate=self._policy.base_adjustment_rate,
            complexity=plan.complexity,
            strategies=plan.strategies,
            recommended_breaks=(
                self._policy.break_minutes.get(profile.preferences.session_length, 25),
            ),
            justification=f"profile level {level} for {subject}; no events yet",
            risk_factors=self._risk_factors(zone.target, 0),
        )
