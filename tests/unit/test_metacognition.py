# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the metacognition assessor."""

import pytest

from src.core.learner_state.constants import MetacognitiveStage
from src.core.learner_state.estimators import MetacognitionAssessor, MetacognitiveEntry


@pytest.fixture
def assessor() -> MetacognitionAssessor:
    """Create an assessor on the default policy."""
    return MetacognitionAssessor()


def _entry(explanation: str = "", confidence: int = 3, performance: float = 0.5, strategies=()):
    return MetacognitiveEntry(
        explanation=explanation,
        self_confidence=confidence,
        actual_performance=performance,
        strategies=tuple(strategies),
    )


class TestEvaluation:
    """Tests for confidence calibration."""

    def test_calibration_example(self, assessor: MetacognitionAssessor) -> None:
        """Test mean(0.9, 0.9, 0.7) = 0.833 scores 83."""
        entries = [
            _entry(confidence=4, performance=0.9),
            _entry(confidence=3, performance=0.5),
            _entry(confidence=5, performance=0.7),
        ]

        scores = assessor.assess(entries)

        assert scores.evaluation == 83

    def test_perfect_calibration(self, assessor: MetacognitionAssessor) -> None:
        """Test that matching confidence and performance scores 100."""
        scores = assessor.assess([_entry(confidence=5, performance=1.0)])

        assert scores.evaluation == 100


class TestSubScores:
    """Tests for the remaining sub-scores."""

    def test_empty_history(self, assessor: MetacognitionAssessor) -> None:
        """Test the neutral starting scores."""
        scores = assessor.assess([])

        assert scores.planning == 0
        assert scores.monitoring == 0
        assert scores.evaluation == 50
        assert scores.regulation == 50
        assert scores.stage == MetacognitiveStage.NOVICE
        assert scores.weaknesses == ("planning", "monitoring", "strategy", "awareness")
        assert scores.strengths == ()

    def test_planning_and_monitoring_share(self, assessor: MetacognitionAssessor) -> None:
        """Test that keyword shares are percentages of entries."""
        entries = [
            _entry("First I found the ratio, then I checked the total"),
            _entry("First I drew the picture"),
            _entry("30"),
            _entry("I will verify by substituting"),
        ]

        scores = assessor.assess(entries)

        assert scores.planning == 50
        assert scores.monitoring == 50

    def test_strategy_counts_distinct_strategies(self, assessor: MetacognitionAssessor) -> None:
        """Test 20 points per distinct strategy, capped at 100."""
        few = assessor.assess([_entry(strategies=["guess_and_check", "table"])])
        many = assessor.assess([_entry(strategies=[f"s{i}" for i in range(7)])])

        assert few.strategy == 40
        assert many.strategy == 100

    def test_awareness_is_half_mean_length(self, assessor: MetacognitionAssessor) -> None:
        """Test awareness from the mean explanation length."""
        scores = assessor.assess([_entry("a" * 40), _entry("a" * 80)])

        assert scores.awareness == 30

    def test_regulation_tracks_improvement(self, assessor: MetacognitionAssessor) -> None:
        """Test regulation rises with late performance over early performance."""
        improving = assessor.assess([_entry(performance=p) for p in [0.2, 0.3, 0.4, 0.6, 0.7, 0.8]])
        declining = assessor.assess([_entry(performance=p) for p in [0.8, 0.7, 0.6, 0.4, 0.3, 0.2]])

        assert improving.regulation > 50 > declining.regulation

    def test_stage_thresholds(self, assessor: MetacognitionAssessor) -> None:
        """Test an all-round strong learner reaches the expert stage."""
        text = "First I made a plan, then I checked each step. " * 5
        entries = [
            _entry(text, confidence=5, performance=1.0, strategies=[f"s{i}" for i in range(5)])
            for _ in range(3)
        ]

        scores = assessor.assess(entries)

        assert scores.stage == MetacognitiveStage.EXPERT
        assert "planning" in scores.strengths


class TestFromEvents:
    """Tests for deriving entries from events."""

    def test_detects_strategies_in_text(self, assessor: MetacognitionAssessor) -> None:
        """Test keyword strategy detection."""
        detected = assessor.detect_strategies("I drew a diagram and made a table")

        assert detected == ("structuring", "visualization")

    def test_entry_merges_declared_and_detected(self, assessor, make_event) -> None:
        """Test that declared and detected strategies are combined."""
        event = make_event(
            explanation_text="I wrote an equation for it",
            strategies_used=["Guess_And_Check"],
        )

        entry = assessor.to_entry(event)

        assert entry.strategies == ("formulation", "guess_and_check")
        assert entry.actual_performance == 1.0
        assert entry.self_confidence == 4
