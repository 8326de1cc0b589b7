# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the motivational state estimator."""

from dataclasses import replace

import pytest

from src.core.learner_state.constants import ChallengeLevel, MotivationType
from src.core.learner_state.estimators import BehaviorCounters, MotivationEstimator


@pytest.fixture
def estimator() -> MotivationEstimator:
    """Create an estimator on the default policy."""
    return MotivationEstimator()


class TestCompute:
    """Tests for mapping counters to scores."""

    def test_fresh_session(self, estimator: MotivationEstimator) -> None:
        """Test the scores of a session with no signals yet."""
        state = estimator.compute(BehaviorCounters())

        assert state.intrinsic == 10
        assert state.extrinsic == 100
        assert state.confidence == 0
        assert state.anxiety == 0
        assert state.flow == 13
        assert state.primary_type == MotivationType.COMPETITION

    def test_scores_are_bounded(self, estimator: MotivationEstimator) -> None:
        """Test that extreme counters stay within [0, 100]."""
        state = estimator.compute(
            BehaviorCounters(
                voluntary_extensions=50,
                help_requests=50,
                persistence_minutes=500,
                positive_expressions=0,
                negative_expressions=50,
            )
        )

        for score in (state.intrinsic, state.extrinsic, state.confidence, state.anxiety, state.flow):
            assert 0 <= score <= 100

    @pytest.mark.parametrize(
        ("counter", "scores"),
        [
            ("voluntary_extensions", ("intrinsic", "flow")),
            ("persistence_minutes", ("intrinsic", "flow")),
            ("positive_expressions", ("confidence",)),
            ("negative_expressions", ("anxiety",)),
            ("help_requests", ("anxiety",)),
        ],
    )
    def test_counters_never_lower_their_scores(
        self, estimator: MotivationEstimator, counter: str, scores: tuple[str, ...]
    ) -> None:
        """Test monotonicity of each score in the counters feeding it."""
        previous = None
        for value in range(0, 12, 2):
            state = estimator.compute(replace(BehaviorCounters(), **{counter: value}))
            current = [getattr(state, name) for name in scores]
            if previous is not None:
                assert all(now >= before for now, before in zip(current, previous))
            previous = current

    def test_hard_challenge_boosts_confidence(self, estimator: MotivationEstimator) -> None:
        """Test the hard-problem confidence bonus."""
        medium = estimator.compute(BehaviorCounters(challenge=ChallengeLevel.MEDIUM))
        hard = estimator.compute(BehaviorCounters(challenge=ChallengeLevel.HARD))

        assert hard.confidence > medium.confidence


class TestCounters:
    """Tests for deriving counters from history."""

    def test_challenge_bands(self, estimator: MotivationEstimator) -> None:
        """Test the difficulty to challenge mapping."""
        assert estimator.challenge_for(3) == ChallengeLevel.EASY
        assert estimator.challenge_for(6) == ChallengeLevel.MEDIUM
        assert estimator.challenge_for(7) == ChallengeLevel.HARD

    def test_counters_from_history(self, estimator, make_event) -> None:
        """Test signals and hard-problem persistence are counted."""
        history = [
            make_event(0, difficulty=8, response_time_ms=60_000, behavior_signals=["help_request"]),
            make_event(
                1,
                difficulty=8,
                response_time_ms=60_000,
                behavior_signals=["voluntary_extension", "positive_expression"],
            ),
            make_event(2, difficulty=4, response_time_ms=30_000),
        ]

        counters = estimator.counters_from(history)

        assert counters.help_requests == 1
        assert counters.voluntary_extensions == 1
        assert counters.positive_expressions == 1
        assert counters.persistence_minutes == 2.0
        assert counters.challenge == ChallengeLevel.MEDIUM
