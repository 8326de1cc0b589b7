# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Predictive projector.

Stateless, read-only extrapolation of a session's metric history:

- Exam readiness: linear accuracy trend projected `horizon` events
  ahead, scored as ability * 10 + efficiency bonus + metacognition bonus,
  with a fixed -15/+10 confidence band
- Time to mastery: base minutes per topic divided by an acceleration
  factor derived from acquisition speed and topic accuracy
- Learning efficiency: retention, acquisition speed, error patterns,
  mastery prediction
- Optimization potential: bottlenecks and suggested improvements
"""

import logging
from collections import Counter
from collections.abc import Sequence

from src.core.learner_state.models import (
    ExamReadiness,
    LearnerProfile,
    LearningEfficiency,
    LearningEvent,
    MetricsSnapshot,
    OptimizationPotential,
    PredictiveProjection,
    TimeToMastery,
)
from src.core.learner_state.policy import ProjectionPolicy
from src.core.learner_state.signals import (
    clamp,
    clamp_score,
    linear_slope,
    mean,
    round_half_up,
    round_to,
    trailing,
)
from src.core.learner_state.state import session_elapsed_ms

logger = logging.getLogger(__name__)


class PredictiveProjector:
    """Projects exam readiness and time to mastery from session history."""

    def __init__(self, policy: ProjectionPolicy | None = None) -> None:
        """Initialize the projector.

        Args:
            policy: Projection policy; defaults to the built-in values.
        """
        self._policy = policy or ProjectionPolicy()

    # =========================================================================
    # Learning efficiency
    # =========================================================================

    def learning_efficiency(
        self, history: Sequence[LearningEvent], accuracy: Sequence[float]
    ) -> LearningEfficiency:
        """Retention, acquisition speed, error patterns and mastery prediction.

        Args:
            history: Accepted events, oldest first.
            accuracy: Per-event accuracy series matching `history`.

        Returns:
            LearningEfficiency for the session so far.
        """
        p = self._policy
        recent = trailing(accuracy, p.retention_window)
        retention = mean(recent, default=p.default_retention)

        minutes = session_elapsed_ms(history) / 60_000
        mastered_concepts = {event.topic for event in history if event.correct}
        acquisition_speed = len(mastered_concepts) / minutes if minutes > 0 else 0.0

        error_patterns = Counter(
            tag.value for event in history for tag in event.error_types
        )

        overall = mean(accuracy)
        multiplier = p.fast_speed_multiplier if acquisition_speed > 1 else p.slow_speed_multiplier
        mastery = min(overall * retention * multiplier, 1.0)

        return LearningEfficiency(
            retention_rate=round_to(retention, 4),
            acquisition_speed=round_to(acquisition_speed, 4),
            error_patterns=dict(sorted(error_patterns.items())),
            mastery_prediction=round_to(mastery, 4),
        )

    # =========================================================================
    # Exam readiness
    # =========================================================================

    def _strong_areas(self, metrics: MetricsSnapshot, efficiency: LearningEfficiency) -> tuple[str, ...]:
        p = self._policy
        areas: list[str] = []
        if metrics.comprehension_depth.strategic > p.strong_strategic:
            areas.append("strategic_thinking")
        if efficiency.acquisition_speed > p.strong_acquisition:
            areas.append("fast_acquisition")
        if metrics.metacognition.evaluation > p.strong_evaluation:
            areas.append("self_management")
        return tuple(areas)

    def _risk_areas(self, metrics: MetricsSnapshot, efficiency: LearningEfficiency) -> tuple[str, ...]:
        p = self._policy
        areas: list[str] = []
        if metrics.comprehension_depth.deep < p.risk_deep:
            areas.append("conceptual_understanding")
        if efficiency.retention_rate < p.risk_retention:
            areas.append("retention")
        if metrics.motivation.anxiety > p.risk_anxiety:
            areas.append("anxiety_management")
        return tuple(areas)

    def exam_readiness(
        self,
        accuracy: Sequence[float],
        metrics: MetricsSnapshot,
        efficiency: LearningEfficiency,
        fallback_level: int,
    ) -> ExamReadiness:
        """Extrapolate the accuracy trend into an exam score estimate.

        Args:
            accuracy: Per-event accuracy series.
            metrics: Latest metrics snapshot.
            efficiency: Learning efficiency for the session.
            fallback_level: Profile level (1-10) used when there is no history.

        Returns:
            ExamReadiness clamped to [0, 100].
        """
        p = self._policy
        if accuracy:
            slope = linear_slope(accuracy)
            recent = mean(trailing(accuracy, p.retention_window))
            projected = clamp(recent + slope * p.horizon, 0.0, 1.0)
        else:
            slope = 0.0
            projected = fallback_level / 10

        ability = projected * 10
        efficiency_bonus = efficiency.mastery_prediction * p.efficiency_weight
        metacognition_bonus = metrics.metacognition.evaluation * p.metacognition_weight
        score = clamp_score(ability * 10 + efficiency_bonus + metacognition_bonus)

        return ExamReadiness(
            estimated_score=score,
            confidence_interval=(max(score - p.band_below, 0), min(score + p.band_above, 100)),
            projected_accuracy=round_to(projected, 4),
            trend_slope=round_to(slope, 6),
            strong_areas=self._strong_areas(metrics, efficiency),
            risk_areas=self._risk_areas(metrics, efficiency),
        )

    # =========================================================================
    # Time to mastery
    # =========================================================================

    def time_to_mastery(
        self,
        history: Sequence[LearningEvent],
        metrics: MetricsSnapshot,
        efficiency: LearningEfficiency,
    ) -> TimeToMastery:
        """Minutes to master each topic seen in the session.

        Topics already at mastery accuracy need no more time. Others take
        base_minutes_per_topic / acceleration, where acceleration scales
        the clamped acquisition speed by how well the topic is going.
        """
        p = self._policy
        by_topic: dict[str, list[float]] = {}
        for event in history:
            by_topic.setdefault(event.topic, []).append(event.accuracy)

        speed = clamp(efficiency.acquisition_speed, p.min_acceleration, p.max_acceleration)
        topics: dict[str, int] = {}
        for topic in sorted(by_topic):
            topic_accuracy = mean(by_topic[topic])
            if topic_accuracy >= p.topic_mastery_accuracy:
                topics[topic] = 0
                continue
            acceleration = speed * (1 + topic_accuracy)
            topics[topic] = round_half_up(p.base_minutes_per_topic / acceleration)

        factors: list[str] = []
        if efficiency.acquisition_speed < 1:
            factors.append("acquisition_speed_below_target")
        if efficiency.retention_rate < p.improvement_retention:
            factors.append("retention_needs_reinforcement")
        if metrics.comprehension_depth.deep < p.bottleneck_deep:
            factors.append("conceptual_depth_limited")

        return TimeToMastery(
            topics=topics,
            total_minutes=sum(topics.values()),
            factors=tuple(factors),
        )

    # =========================================================================
    # Optimization potential
    # =========================================================================

    def optimization(
        self, metrics: MetricsSnapshot, efficiency: LearningEfficiency
    ) -> OptimizationPotential:
        """Current efficiency against the achievable maximum."""
        p = self._policy
        bottlenecks: list[str] = []
        if metrics.comprehension_depth.deep < p.bottleneck_deep:
            bottlenecks.append("deep_understanding")
        if metrics.metacognition.regulation < p.bottleneck_regulation:
            bottlenecks.append("self_regulation")

        improvements: list[str] = []
        if efficiency.retention_rate < p.improvement_retention:
            improvements.append("spaced_repetition")
        if metrics.motivation.flow < p.improvement_flow:
            improvements.append("difficulty_tuning")

        return OptimizationPotential(
            current_efficiency=clamp_score(efficiency.mastery_prediction * 100),
            max_potential=p.max_potential,
            bottlenecks=tuple(bottlenecks),
            improvements=tuple(improvements),
        )

    # =========================================================================
    # Entry point
    # =========================================================================

    def project(
        self,
        *,
        history: Sequence[LearningEvent],
        accuracy: Sequence[float],
        metrics: MetricsSnapshot,
        profile: LearnerProfile,
        subject: str,
    ) -> PredictiveProjection:
        """Build the full projection for a session.

        Args:
            history: Accepted events, oldest first.
            accuracy: Per-event accuracy series.
            metrics: Latest metrics snapshot.
            profile: Learner profile, used when there is no history.
            subject: Session subject.

        Returns:
            PredictiveProjection; the inputs are not modified.
        """
        efficiency = self.learning_efficiency(history, accuracy)
        readiness = self.exam_readiness(
            accuracy, metrics, efficiency, profile.level_for(subject).current
        )
        logger.debug(
            "Projection over %d events: score=%d slope=%.4f",
            len(history),
            readiness.estimated_score,
            readiness.trend_slope,
        )
        return PredictiveProjection(
            exam_readiness=readiness,
            time_to_mastery=self.time_to_mastery(history, metrics, efficiency),
            learning_efficiency=efficiency,
            optimization=self.optimization(metrics, efficiency),
            based_on_events=len(history),
        )
