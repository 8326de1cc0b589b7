# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the adaptive difficulty controller."""

import pytest

from src.core.learner_state.constants import DiagnosticKind
from src.core.learner_state.estimators import AdaptiveDifficultyController
from src.core.learner_state.models import CognitiveLoadReading


@pytest.fixture
def controller() -> AdaptiveDifficultyController:
    """Create a controller on the default policy."""
    return AdaptiveDifficultyController()


class TestZone:
    """Tests for the ZPD window and target."""

    def test_improving_window(self, controller: AdaptiveDifficultyController) -> None:
        """Test mean 0.72 gives ability 7, ZPD [6, 9] and target 8.5."""
        zone = controller.zone([0.6, 0.7, 0.7, 0.8, 0.8])

        assert zone.ability == 7
        assert (zone.lower, zone.upper) == (6, 9)
        assert zone.optimal == 8
        assert zone.target == 8.5

    def test_declining_window(self, controller: AdaptiveDifficultyController) -> None:
        """Test that a declining window steps the target down."""
        zone = controller.zone([0.8, 0.8, 0.7, 0.7, 0.6])

        assert zone.ability == 7
        assert zone.target == 7.5

    def test_only_last_five_events_count(self, controller: AdaptiveDifficultyController) -> None:
        """Test that older accuracy falls out of the window."""
        zone = controller.zone([0.0, 0.0, 0.0, 1.0, 1.0, 1.0, 1.0, 1.0])

        assert zone.ability == 10

    def test_top_of_scale(self, controller: AdaptiveDifficultyController) -> None:
        """Test that the window and target are clamped at 10."""
        zone = controller.zone([1.0] * 5)

        assert (zone.lower, zone.upper) == (9, 10)
        assert zone.target == 10

    def test_bottom_of_scale(self, controller: AdaptiveDifficultyController) -> None:
        """Test that the window and target are clamped at 1."""
        zone = controller.zone([0.0] * 5)

        assert (zone.lower, zone.upper) == (1, 2)
        assert zone.target == 1


class TestAdjustmentRate:
    """Tests for the per-event adjustment rate."""

    def test_base_rate_with_reference_speed(self, controller: AdaptiveDifficultyController) -> None:
        """Test that reference speed and a single answer give base + consistency."""
        rate = controller.adjustment_rate([1.0], [30_000])

        assert rate == 0.15

    def test_rate_is_capped(self, controller: AdaptiveDifficultyController) -> None:
        """Test that very fast answers cannot push the rate past 0.3."""
        rate = controller.adjustment_rate([1.0] * 5, [1_000] * 5)

        assert rate == 0.3

    def test_zero_response_time_is_an_anomaly(self, controller, make_event, build_context) -> None:
        """Test that a zero-duration event neutralises the speed bonus."""
        context = build_context([make_event(response_time_ms=0)])

        path = controller.estimate(context)

        assert path.adjustment_rate == 0.15
        assert len(context.anomalies) == 1
        assert context.anomalies[0].kind == DiagnosticKind.COMPUTATION_ANOMALY
        assert context.anomalies[0].source == "adaptive_difficulty"


class TestComplexity:
    """Tests for the load-driven complexity optimiser."""

    @pytest.mark.parametrize(
        ("load", "complexity", "scaffolding"),
        [(90, 3, 3), (60, 5, 2), (20, 6, 1)],
    )
    def test_complexity_follows_load(
        self, controller: AdaptiveDifficultyController, load: int, complexity: int, scaffolding: int
    ) -> None:
        """Test complexity and scaffolding for high, balanced and low load."""
        plan = controller.optimize_complexity(load, 5)

        assert plan.complexity == complexity
        assert plan.scaffolding_level == scaffolding

    def test_complexity_is_clamped(self, controller: AdaptiveDifficultyController) -> None:
        """Test that complexity stays within [1, 10]."""
        assert controller.optimize_complexity(95, 1).complexity == 1
        assert controller.optimize_complexity(10, 10).complexity == 10

    def test_recommended_breaks(self, controller: AdaptiveDifficultyController) -> None:
        """Test the break schedule for each load band."""
        assert controller.recommended_breaks(75, "medium") == (10, 20, 35)
        assert controller.recommended_breaks(50, "medium") == (15, 30)
        assert controller.recommended_breaks(20, "long") == (45,)


class TestEstimate:
    """Tests for the full adaptive path."""

    def test_recommendation_inside_zpd(self, controller, make_event, build_context) -> None:
        """Test that the recommended difficulty lies inside the ZPD."""
        events = [make_event(i, is_correct=i % 2 == 0) for i in range(6)]
        context = build_context(events)

        path = controller.estimate(context, CognitiveLoadReading(level=85))

        lower, upper = path.zpd
        assert lower <= path.recommended_difficulty <= upper
        assert path.scaffolding_level == 3
        assert "cognitive_overload" in path.risk_factors

    def test_initial_path_from_profile(self, controller, sample_profile) -> None:
        """Test the path before any event uses the profile level."""
        path = controller.initial_path(sample_profile, "math")

        assert path.zpd == (4, 7)
        assert path.recommended_difficulty == 6
        assert path.recommended_breaks == (25,)
