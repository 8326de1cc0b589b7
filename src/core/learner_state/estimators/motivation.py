# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Motivational state estimator.

Derives behavioral counters from the session history and maps them to
five clamped [0, 100] scores. Every weight is non-negative for the
counters that feed a score, so raising such a counter never lowers it.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from src.core.learner_state.constants import BehaviorSignal, ChallengeLevel, MotivationType
from src.core.learner_state.estimators.base import BaseEstimator
from src.core.learner_state.models import LearningEvent, MotivationalState
from src.core.learner_state.policy import MotivationPolicy
from src.core.learner_state.signals import clamp_score
from src.core.learner_state.state import EstimationContext


@dataclass(frozen=True)
class BehaviorCounters:
    """Behavioral counters accumulated over a session."""

    session_initiations: int = 1
    voluntary_extensions: int = 0
    help_requests: int = 0
    challenge: ChallengeLevel = ChallengeLevel.MEDIUM
    persistence_minutes: float = 0.0
    positive_expressions: int = 0
    negative_expressions: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "session_initiations": self.session_initiations,
            "voluntary_extensions": self.voluntary_extensions,
            "help_requests": self.help_requests,
            "challenge": self.challenge.value,
            "persistence_minutes": self.persistence_minutes,
            "positive_expressions": self.positive_expressions,
            "negative_expressions": self.negative_expressions,
        }


class MotivationEstimator(BaseEstimator):
    """Estimates intrinsic/extrinsic motivation, confidence, anxiety and flow."""

    policy_class = MotivationPolicy

    @property
    def name(self) -> str:
        """Return the estimator name."""
        return "motivation"

    def challenge_for(self, difficulty: int) -> ChallengeLevel:
        """Map a difficulty level onto a challenge band."""
        if difficulty <= self._policy.easy_max_difficulty:
            return ChallengeLevel.EASY
        if difficulty <= self._policy.medium_max_difficulty:
            return ChallengeLevel.MEDIUM
        return ChallengeLevel.HARD

    def counters_from(self, history: Sequence[LearningEvent]) -> BehaviorCounters:
        """Accumulate behavioral counters from the session history.

        The challenge band follows the latest event. Persistence counts
        minutes spent on hard problems.
        """
        if not history:
            return BehaviorCounters()

        def count(signal: BehaviorSignal) -> int:
            return sum(1 for event in history if event.has_signal(signal))

        hard_ms = sum(
            event.response_time_ms
            for event in history
            if self.challenge_for(event.difficulty) == ChallengeLevel.HARD
        )

        return BehaviorCounters(
            voluntary_extensions=count(BehaviorSignal.VOLUNTARY_EXTENSION),
            help_requests=count(BehaviorSignal.HELP_REQUEST),
            challenge=self.challenge_for(history[-1].difficulty),
            persistence_minutes=hard_ms / 60_000,
            positive_expressions=count(BehaviorSignal.POSITIVE_EXPRESSION),
            negative_expressions=count(BehaviorSignal.NEGATIVE_EXPRESSION),
        )

    def estimate(self, context: EstimationContext) -> MotivationalState:
        """Estimate motivation from the whole session history."""
        return self.compute(self.counters_from(context.history))

    def compute(self, counters: BehaviorCounters) -> MotivationalState:
        """Map counters to the five motivation scores.

        Args:
            counters: Behavioral counters for the session.

        Returns:
            MotivationalState with the primary motivation type.
        """
        p = self._policy
        hard = counters.challenge == ChallengeLevel.HARD
        medium = counters.challenge == ChallengeLevel.MEDIUM
        easy = counters.challenge == ChallengeLevel.EASY

        challenge_bonus = (
            p.intrinsic_hard_bonus if hard else p.intrinsic_medium_bonus if medium else 0.0
        )
        intrinsic = clamp_score(
            (
                counters.session_initiations * p.initiation_weight
                + counters.voluntary_extensions * p.extension_weight
                + challenge_bonus
                + min(counters.persistence_minutes * p.persistence_weight, p.persistence_cap)
            )
            * p.intrinsic_scale
        )
        extrinsic = clamp_score(max(0.0, p.extrinsic_base - counters.help_requests * p.help_penalty))
        confidence = clamp_score(
            (
                counters.positive_expressions * p.positive_weight
                - counters.negative_expressions * p.negative_weight
                + (p.confidence_hard_bonus if hard else 0.0)
            )
            * p.confidence_scale
        )
        anxiety = clamp_score(
            (
                counters.negative_expressions * p.anxiety_negative_weight
                + counters.help_requests * p.anxiety_help_weight
                + (p.anxiety_easy_bonus if easy else 0.0)
            )
            * p.anxiety_scale
        )
        flow = clamp_score(
            (
                counters.voluntary_extensions * p.flow_extension_weight
                + counters.persistence_minutes * p.flow_persistence_weight
                + (p.flow_medium_bonus if medium else 0.0)
            )
            * p.flow_scale
        )

        return MotivationalState(
            intrinsic=intrinsic,
            extrinsic=extrinsic,
            confidence=confidence,
            anxiety=anxiety,
            flow=flow,
            primary_type=self.primary_type(intrinsic, extrinsic, confidence, flow),
        )

    @staticmethod
    def primary_type(intrinsic: int, extrinsic: int, confidence: int, flow: int) -> MotivationType:
        """Pick the dominant motivation type; ties go to the later type."""
        scores = {
            MotivationType.ACHIEVEMENT: intrinsic * 0.7 + confidence * 0.3,
            MotivationType.PROGRESS: intrinsic * 0.5 + flow * 0.5,
            MotivationType.COMPETITION: extrinsic * 0.6 + confidence * 0.4,
            MotivationType.EXPLORATION: intrinsic * 0.8 + flow * 0.2,
        }
        best = MotivationType.ACHIEVEMENT
        for candidate, score in scores.items():
            if not scores[best] > score:
                best = candidate
        return best
