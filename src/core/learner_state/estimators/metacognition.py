# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Metacognition assessor.

Computes six competency sub-scores over the full session history:

- planning: % of entries using sequencing language
- monitoring: % of entries using verification language
- evaluation: calibration of self-confidence against actual performance
- strategy: 20 points per distinct strategy, capped at 100
- awareness: mean explanation length / 2, capped at 100
- regulation: 50 + 100 * (mean of last 3 - mean of first 3), clamped

The mean of the six places the learner on a development stage.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from src.core.learner_state.constants import MetacognitiveStage
from src.core.learner_state.estimators.base import BaseEstimator
from src.core.learner_state.models import LearningEvent, MetacognitionScores
from src.core.learner_state.policy import MetacognitionPolicy
from src.core.learner_state.signals import clamp_score, contains_any, mean, round_half_up
from src.core.learner_state.state import EstimationContext

SUB_SCORES = ("planning", "monitoring", "evaluation", "strategy", "awareness", "regulation")


@dataclass(frozen=True)
class MetacognitiveEntry:
    """One history entry as the assessor sees it.

    Attributes:
        explanation: Free-text explanation.
        self_confidence: Self-reported confidence (1-5).
        actual_performance: Observed performance (0-1).
        strategies: Strategies used on this entry.
        time_spent_ms: Time spent on the problem.
    """

    explanation: str
    self_confidence: int
    actual_performance: float
    strategies: tuple[str, ...] = ()
    time_spent_ms: int = 0


class MetacognitionAssessor(BaseEstimator):
    """Scores planning, monitoring, evaluation, strategy, awareness and regulation."""

    policy_class = MetacognitionPolicy

    @property
    def name(self) -> str:
        """Return the estimator name."""
        return "metacognition"

    def to_entry(self, event: LearningEvent) -> MetacognitiveEntry:
        """Project an event onto the fields the assessor uses.

        Strategies are those the learner declared plus those detected in
        the explanation text.
        """
        detected = self.detect_strategies(event.explanation_text)
        return MetacognitiveEntry(
            explanation=event.explanation_text,
            self_confidence=event.confidence,
            actual_performance=event.accuracy,
            strategies=tuple(sorted(set(event.strategies_used) | set(detected))),
            time_spent_ms=event.response_time_ms,
        )

    def detect_strategies(self, explanation: str) -> tuple[str, ...]:
        """Detect known problem-solving strategies mentioned in an explanation."""
        return tuple(
            strategy
            for strategy, terms in sorted(self._policy.strategy_patterns.items())
            if contains_any(explanation, terms)
        )

    def estimate(self, context: EstimationContext) -> MetacognitionScores:
        """Assess metacognition over the whole session history."""
        return self.assess([self.to_entry(event) for event in context.history])

    def assess(self, entries: Sequence[MetacognitiveEntry]) -> MetacognitionScores:
        """Compute the six sub-scores and derived stage.

        Args:
            entries: Session history, oldest first.

        Returns:
            MetacognitionScores. An empty history scores 0 everywhere
            except evaluation and regulation, which start at 50.
        """
        scores = {
            "planning": self._keyword_share(entries, self._policy.planning_terms),
            "monitoring": self._keyword_share(entries, self._policy.monitoring_terms),
            "evaluation": self._evaluation(entries),
            "strategy": self._strategy(entries),
            "awareness": self._awareness(entries),
            "regulation": self._regulation(entries),
        }

        return MetacognitionScores(
            **scores,
            stage=self._stage(mean(list(scores.values()))),
            strengths=tuple(
                name for name in SUB_SCORES if scores[name] >= self._policy.strength_threshold
            ),
            weaknesses=tuple(
                name for name in SUB_SCORES if scores[name] < self._policy.weakness_threshold
            ),
        )

    def _keyword_share(self, entries: Sequence[MetacognitiveEntry], terms: list[str]) -> int:
        if not entries:
            return 0
        hits = sum(1 for entry in entries if contains_any(entry.explanation, terms))
        return clamp_score(100 * hits / len(entries))

    def _evaluation(self, entries: Sequence[MetacognitiveEntry]) -> int:
        if not entries:
            return 50
        calibration = [
            1 - abs(entry.self_confidence / 5 - entry.actual_performance) for entry in entries
        ]
        return clamp_score(100 * mean(calibration))

    def _strategy(self, entries: Sequence[MetacognitiveEntry]) -> int:
        distinct = {strategy for entry in entries for strategy in entry.strategies}
        return min(100, self._policy.strategy_points * len(distinct))

    def _awareness(self, entries: Sequence[MetacognitiveEntry]) -> int:
        if not entries:
            return 0
        mean_length = mean([len(entry.explanation) for entry in entries])
        return min(100, round_half_up(mean_length / self._policy.awareness_divisor))

    def _regulation(self, entries: Sequence[MetacognitiveEntry]) -> int:
        size = self._policy.regulation_min_entries
        if len(entries) < size:
            return 50
        first = mean([entry.actual_performance for entry in entries[:size]])
        last = mean([entry.actual_performance for entry in entries[-size:]])
        return clamp_score(50 + 100 * (last - first))

    def _stage(self, average: float) -> MetacognitiveStage:
        if average >= self._policy.expert_threshold:
            return MetacognitiveStage.EXPERT
        if average >= self._policy.proficient_threshold:
            return MetacognitiveStage.PROFICIENT
        if average >= self._policy.developing_threshold:
            return MetacognitiveStage.DEVELOPING
        return MetacognitiveStage.NOVICE
