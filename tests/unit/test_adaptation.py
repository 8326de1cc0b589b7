# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the real-time adaptation loop."""

from datetime import timedelta

import pytest

from src.core.learner_state.adaptation import AdaptationLoop, TriggerOutcome
from src.core.learner_state.constants import AdaptiveAction, DiagnosticKind, MotivationType
from src.core.learner_state.models import DiagnosticEntry, MotivationalState

STRUGGLING = ["hesitation", "long_pause", "calculation_error", "concept_error"]


def _triggers(loop: AdaptationLoop, **overrides) -> TriggerOutcome:
    inputs = {
        "elapsed_ms": 10 * 60_000,
        "session_accuracy": 0.75,
        "average_accuracy": 0.75,
        "average_response_ms": 40_000,
        "frustration_count": 0,
        "engagement": 60.0,
    }
    inputs.update(overrides)
    return loop.evaluate_triggers(**inputs)


class TestTriggers:
    """Tests for trigger evaluation."""

    def test_no_trigger_fires(self, loop: AdaptationLoop) -> None:
        """Test a calm, steady session fires nothing."""
        outcome = _triggers(loop)

        assert outcome.actions == ()
        assert outcome.difficulty_delta == 0

    def test_fatigue_and_frustration_fire_together(self, loop: AdaptationLoop) -> None:
        """Test 50 minutes at 0.55 accuracy with 4 indicators fires both."""
        outcome = _triggers(
            loop, elapsed_ms=50 * 60_000, session_accuracy=0.55, frustration_count=4
        )

        assert outcome.actions == (AdaptiveAction.SUGGEST_BREAK, AdaptiveAction.ENCOURAGE)
        assert outcome.complexity_delta == -1
        assert outcome.scaffolding_delta == 1
        assert outcome.difficulty_delta == -1
        assert loop.support_level(2, outcome) == 4

    def test_encourage_alone_sets_support_four(self, loop: AdaptationLoop) -> None:
        """Test that frustration by itself lifts support to level 4."""
        outcome = _triggers(loop, frustration_count=4)

        assert outcome.actions == (AdaptiveAction.ENCOURAGE,)
        assert loop.support_level(0, outcome) == 4
        assert loop.support_level(3, outcome) == 4

    def test_fatigue_uses_session_accuracy(self, loop: AdaptationLoop) -> None:
        """Test that a strong recent window does not mask a weak session."""
        outcome = _triggers(
            loop,
            elapsed_ms=50 * 60_000,
            session_accuracy=0.4,
            average_accuracy=1.0,
            average_response_ms=20_000,
        )

        assert outcome.actions == (AdaptiveAction.SUGGEST_BREAK, AdaptiveAction.RAISE_CHALLENGE)

    def test_fatigue_ignores_recent_window_dip(self, loop: AdaptationLoop) -> None:
        """Test that a weak recent window alone does not suggest a break."""
        outcome = _triggers(
            loop, elapsed_ms=50 * 60_000, session_accuracy=0.8, average_accuracy=0.2
        )

        assert not outcome.fired(AdaptiveAction.SUGGEST_BREAK)

    def test_actions_follow_trigger_order(self, loop: AdaptationLoop) -> None:
        """Test that actions are listed in the order the triggers are checked."""
        outcome = _triggers(
            loop,
            elapsed_ms=50 * 60_000,
            session_accuracy=0.5,
            average_accuracy=0.95,
            average_response_ms=20_000,
            frustration_count=5,
            engagement=20.0,
        )

        assert outcome.actions == (
            AdaptiveAction.SUGGEST_BREAK,
            AdaptiveAction.ENCOURAGE,
            AdaptiveAction.GAMIFY_NEXT,
            AdaptiveAction.RAISE_CHALLENGE,
        )

    def test_frustration_threshold_is_exclusive(self, loop: AdaptationLoop) -> None:
        """Test that exactly three indicators do not fire encourage."""
        assert not _triggers(loop, frustration_count=3).fired(AdaptiveAction.ENCOURAGE)
        assert _triggers(loop, frustration_count=4).fired(AdaptiveAction.ENCOURAGE)

    def test_low_engagement_gamifies(self, loop: AdaptationLoop) -> None:
        """Test that engagement below 40 asks for gamification."""
        outcome = _triggers(loop, engagement=30.0)

        assert outcome.actions == (AdaptiveAction.GAMIFY_NEXT,)
        assert outcome.novelty_delta == 1

    def test_mastery_raises_challenge(self, loop: AdaptationLoop) -> None:
        """Test fast, accurate work raises the challenge."""
        outcome = _triggers(loop, average_accuracy=0.95, average_response_ms=20_000)

        assert outcome.actions == (AdaptiveAction.RAISE_CHALLENGE,)
        assert outcome.difficulty_delta == 1
        assert loop.support_level(2, outcome) == 1

    def test_frustration_counts_recent_window(self, loop: AdaptationLoop, make_event) -> None:
        """Test that only the last five events count toward frustration."""
        history = [make_event(0, struggling_indicators=STRUGGLING)] + [
            make_event(i) for i in range(1, 6)
        ]

        assert loop.frustration_count(history) == 0
        assert loop.frustration_count(history[:5]) == 4


class TestRun:
    """Tests for a full pass of the loop."""

    def test_first_event_decision(self, loop: AdaptationLoop, make_event, build_context) -> None:
        """Test the decision for a session's first event."""
        event = make_event(explanation_text="I used a line segment diagram")
        context = build_context([event])

        outcome = loop.run(context, methods=["line_segment_diagram"])
        decision = outcome.decision

        assert decision.sequence == 1
        assert decision.metrics.event_count == 1
        assert decision.next_problem.methods == ("line_segment_diagram",)
        assert decision.next_problem.subject == "math"
        assert 1 <= decision.next_problem.difficulty <= 10
        assert decision.degraded is False
        assert decision.diagnostics == ()
        assert outcome.accuracy == 1.0

    def test_struggling_session_breaks_and_encourages(
        self, loop: AdaptationLoop, make_event, build_context
    ) -> None:
        """Test the combined break and encouragement after a long, rough session."""
        base = make_event(0)
        events = [
            make_event(
                i,
                is_correct=i % 2 == 1,
                response_time_ms=60_000,
                timestamp=base.timestamp + timedelta(minutes=12 * i),
                struggling_indicators=STRUGGLING if i == 4 else [],
            )
            for i in range(5)
        ]
        context = build_context(events)

        decision = loop.run(context).decision

        assert AdaptiveAction.SUGGEST_BREAK in decision.actions
        assert AdaptiveAction.ENCOURAGE in decision.actions
        assert decision.support_level == 4
        assert decision.difficulty_change < 0
        assert decision.support.encouragement == "encouragement.frustration"

    def test_late_recovery_still_suggests_break(
        self, loop: AdaptationLoop, make_event, build_context
    ) -> None:
        """Test that fatigue judges the whole session, not the recent streak."""
        base = make_event(0)
        events = [
            make_event(
                i,
                is_correct=i >= 10,
                response_time_ms=20_000,
                timestamp=base.timestamp + timedelta(minutes=4 * i),
            )
            for i in range(15)
        ]

        decision = loop.run(build_context(events)).decision

        assert AdaptiveAction.SUGGEST_BREAK in decision.actions
        assert AdaptiveAction.RAISE_CHALLENGE in decision.actions

    def test_difficulty_change_bounded_by_rate(
        self, loop: AdaptationLoop, make_event, build_context
    ) -> None:
        """Test that the difficulty change never exceeds the adjustment rate."""
        events = [make_event(i, response_time_ms=5_000) for i in range(5)]
        decision = loop.run(build_context(events)).decision

        bound = decision.metrics.adaptive_path.adjustment_rate * 10
        assert abs(decision.difficulty_change) <= bound
        assert AdaptiveAction.RAISE_CHALLENGE in decision.actions

    def test_degraded_lookups_are_reported(
        self, loop: AdaptationLoop, make_event, build_context
    ) -> None:
        """Test that lookup diagnostics and the degraded flag pass through."""

        lookup = DiagnosticEntry(
            kind=DiagnosticKind.EXTERNAL_LOOKUP_DEGRADED,
            source="content_catalog",
            detail="cached methods",
        )

        decision = loop.run(
            build_context([make_event()]), degraded=True, lookups=[lookup]
        ).decision

        assert decision.degraded is True
        assert decision.diagnostics == (lookup,)


class TestGamification:
    """Tests for gamification hints."""

    @pytest.mark.parametrize(
        ("primary", "challenge", "reward"),
        [
            (MotivationType.ACHIEVEMENT, 7, "badge_progression"),
            (MotivationType.COMPETITION, 8, "ranking_system"),
            (MotivationType.EXPLORATION, 5, "exploration_rewards"),
        ],
    )
    def test_hint_follows_primary_type(self, primary, challenge, reward) -> None:
        """Test challenge step and reward system per motivation type."""
        hint = AdaptationLoop.gamification_for(MotivationalState(primary_type=primary), 5)

        assert hint.challenge_level == challenge
        assert hint.reward_system == reward
