# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Real-time adaptation loop.

The AdaptationLoop is responsible for:
- Running the five estimators in dependency order for each event
- Building a fresh MetricsSnapshot from their outputs
- Detecting trigger conditions (fatigue, frustration, disengagement, mastery)
- Combining fired triggers into a single AdaptiveDecision

Triggers are independent: every matching one fires, their actions are
unioned and their difficulty deltas summed, then clamped to the
controller's adjustment-rate bound.

The loop is a pure function of (session view, event). It holds no
per-session state and never suspends, so one instance serves every
session in the process.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from src.core.learner_state.constants import (
    MOD_ADD_SCAFFOLDING,
    MOD_EXTENSION_PROBLEMS,
    MOD_INTERACTIVE_ELEMENTS,
    MOD_REDUCE_COMPLEXITY,
    AdaptiveAction,
    MotivationType,
)
from src.core.learner_state.estimators import (
    AdaptiveDifficultyController,
    BehaviorCounters,
    CognitiveLoadEstimator,
    ComprehensionClassifier,
    MetacognitionAssessor,
    MotivationEstimator,
)
from src.core.learner_state.models import (
    AdaptiveDecision,
    AdaptivePath,
    CognitiveLoadReading,
    ComprehensionDepth,
    DiagnosticEntry,
    GamificationHint,
    LearnerProfile,
    LearningEvent,
    MetacognitionScores,
    MetricsSnapshot,
    MotivationalState,
    NextProblemSpec,
    SupportSlots,
)
from src.core.learner_state.policy import EnginePolicy
from src.core.learner_state.signals import clamp, mean, round_half_up, round_to, trailing
from src.core.learner_state.state import EstimationContext, PipelineOutcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TriggerOutcome:
    """Combined effect of every trigger that fired for one event."""

    actions: tuple[AdaptiveAction, ...] = ()
    difficulty_delta: float = 0.0
    complexity_delta: int = 0
    novelty_delta: int = 0
    scaffolding_delta: int = 0
    modifications: tuple[str, ...] = ()

    def fired(self, action: AdaptiveAction) -> bool:
        """Check whether an action fired."""
        return action in self.actions


_GAMIFICATION = {
    MotivationType.ACHIEVEMENT: (2, "badge_progression", ("leaderboard", "personal_best"), "hero_journey", "achievement_focused"),
    MotivationType.PROGRESS: (1, "progress_bars", ("self_improvement",), "skill_building", "growth_oriented"),
    MotivationType.COMPETITION: (3, "ranking_system", ("peer_comparison", "team_challenges"), "tournament", "competitive"),
    MotivationType.EXPLORATION: (0, "exploration_rewards", ("discovery",), "adventure", "exploratory"),
}


class AdaptationLoop:
    """Runs the estimator pipeline and turns its output into decisions."""

    def __init__(self, policy: EnginePolicy | None = None) -> None:
        """Initialize the loop and its estimators.

        Args:
            policy: Engine policy; defaults to the built-in table.
        """
        self._policy = policy or EnginePolicy()
        self.cognitive_load = CognitiveLoadEstimator(self._policy.cognitive_load)
        self.comprehension = ComprehensionClassifier(self._policy.comprehension)
        self.metacognition = MetacognitionAssessor(self._policy.metacognition)
        self.motivation = MotivationEstimator(self._policy.motivation)
        self.difficulty = AdaptiveDifficultyController(self._policy.difficulty)

    @property
    def policy(self) -> EnginePolicy:
        """Get the engine policy."""
        return self._policy

    def initial_snapshot(self, profile: LearnerProfile, subject: str) -> MetricsSnapshot:
        """Snapshot for a session that has not seen any event yet."""
        return MetricsSnapshot(
            cognitive_load=CognitiveLoadReading(
                level=0, optimal_range=self._policy.cognitive_load.optimal_range
            ),
            comprehension_depth=ComprehensionDepth(),
            metacognition=self.metacognition.assess([]),
            motivation=self.motivation.compute(BehaviorCounters()),
            adaptive_path=self.difficulty.initial_path(profile, subject),
            event_count=0,
        )

    def engagement_for(self, event: LearningEvent) -> float:
        """Engagement (0-100) for a single event from pace, effort and confidence."""
        p = self._policy.adaptation
        pace = 1 - min(event.response_time_ms / p.engagement_reference_ms, 1.0)
        effort = min(len(event.explanation_text) / p.engagement_reference_length, 1.0)
        confidence = (event.confidence - 1) / 4
        score = 100 * (
            p.engagement_pace_weight * pace
            + p.engagement_effort_weight * effort
            + p.engagement_confidence_weight * confidence
        )
        return round_to(clamp(score, 0.0, 100.0), 2)

    def evaluate_triggers(
        self,
        *,
        elapsed_ms: int,
        session_accuracy: float,
        average_accuracy: float,
        average_response_ms: float,
        frustration_count: int,
        engagement: float,
    ) -> TriggerOutcome:
        """Evaluate every trigger condition.

        Args:
            elapsed_ms: Session time elapsed.
            session_accuracy: Average accuracy over the whole session (0-1).
            average_accuracy: Recent average accuracy (0-1).
            average_response_ms: Recent average response time.
            frustration_count: Struggling indicators in the recent window.
            engagement: Recent average engagement (0-100).

        Returns:
            TriggerOutcome with actions in trigger order.
        """
        p = self._policy.adaptation
        actions: list[AdaptiveAction] = []
        modifications: list[str] = []
        difficulty_delta = 0.0
        complexity_delta = 0
        novelty_delta = 0
        scaffolding_delta = 0

        if elapsed_ms > p.fatigue_minutes * 60_000 and session_accuracy < p.fatigue_accuracy:
            actions.append(AdaptiveAction.SUGGEST_BREAK)
            modifications.append(MOD_REDUCE_COMPLEXITY)
            complexity_delta -= 1

        if frustration_count > p.frustration_threshold:
            actions.append(AdaptiveAction.ENCOURAGE)
            modifications.append(MOD_ADD_SCAFFOLDING)
            scaffolding_delta += 1
            difficulty_delta -= 1

        if engagement < p.engagement_threshold:
            actions.append(AdaptiveAction.GAMIFY_NEXT)
            modifications.append(MOD_INTERACTIVE_ELEMENTS)
            novelty_delta += 1

        if average_accuracy > p.mastery_accuracy and average_response_ms < p.mastery_response_ms:
            actions.append(AdaptiveAction.RAISE_CHALLENGE)
            modifications.append(MOD_EXTENSION_PROBLEMS)
            difficulty_delta += 1

        return TriggerOutcome(
            actions=tuple(actions),
            difficulty_delta=difficulty_delta,
            complexity_delta=complexity_delta,
            novelty_delta=novelty_delta,
            scaffolding_delta=scaffolding_delta,
            modifications=tuple(modifications),
        )

    def frustration_count(self, history: Sequence[LearningEvent]) -> int:
        """Struggling indicators across the trailing frustration window."""
        window = history[-self._policy.adaptation.frustration_window :]
        return sum(len(event.struggling_indicators) for event in window)

    def support_level(self, scaffolding_level: int, triggers: TriggerOutcome) -> int:
        """Support level (0-5) for the decision."""
        p = self._policy.adaptation
        level = scaffolding_level
        if triggers.fired(AdaptiveAction.ENCOURAGE):
            level = p.encourage_support_level
        elif triggers.fired(AdaptiveAction.RAISE_CHALLENGE):
            level -= 1
        return int(clamp(level, 0, p.max_support_level))

    def personalized_strategies(
        self,
        load: CognitiveLoadReading,
        depth: ComprehensionDepth,
        metacognition: MetacognitionScores,
    ) -> tuple[str, ...]:
        """Learning strategies suited to the current learner model."""
        p = self._policy.adaptation
        strategies: list[str] = []
        if load.level > p.chunking_load:
            strategies.append("chunking")
        if depth.deep < p.concept_map_deep:
            strategies.append("concept_mapping")
        if metacognition.evaluation < p.reflection_evaluation:
            strategies.append("self_reflection")
        return tuple(strategies)

    @staticmethod
    def gamification_for(motivation: MotivationalState, progress: int) -> GamificationHint:
        """Gamification adaptation for the learner's primary motivation type."""
        step, reward, competitive, narrative, feedback = _GAMIFICATION[motivation.primary_type]
        return GamificationHint(
            motivation_type=motivation.primary_type,
            challenge_level=int(clamp(progress + step, 1, 10)),
            reward_system=reward,
            competitive_elements=competitive,
            narrative_theme=narrative,
            feedback_style=feedback,
        )

    def _support_slots(
        self,
        event: LearningEvent,
        load: CognitiveLoadReading,
        scaffolding_level: int,
        triggers: TriggerOutcome,
    ) -> SupportSlots:
        encouragement = None
        if triggers.fired(AdaptiveAction.ENCOURAGE):
            encouragement = "encouragement.frustration"
        elif triggers.fired(AdaptiveAction.RAISE_CHALLENGE):
            encouragement = "encouragement.mastery"

        review = any(flag.indicator == "accuracy_collapse" for flag in load.overload_flags)
        return SupportSlots(
            hint=f"hint.scaffold_{scaffolding_level}" if scaffolding_level >= 2 else None,
            encouragement=encouragement,
            clarification="clarification.review_basics" if review else None,
            next_question=f"next_question.{event.subject}.{event.topic}",
        )

    def run(
        self,
        context: EstimationContext,
        *,
        methods: Sequence[str] = (),
        degraded: bool = False,
        lookups: Sequence[DiagnosticEntry] = (),
    ) -> PipelineOutcome:
        """Process one event end to end.

        Args:
            context: Session view with the event appended.
            methods: Applicable solution methods from the content catalog.
            degraded: Whether any external data used is stale or default.
            lookups: Diagnostics from degraded external lookups.

        Returns:
            PipelineOutcome holding the decision and the series values
            to commit.
        """
        event = context.event
        adaptation = self._policy.adaptation

        load = self.cognitive_load.estimate(context)
        totals, depth = self.comprehension.estimate(context)
        metacognition = self.metacognition.estimate(context)
        motivation = self.motivation.estimate(context)
        path = self.difficulty.estimate(context, load)

        engagement = self.engagement_for(event)
        triggers = self.evaluate_triggers(
            elapsed_ms=context.elapsed_ms,
            session_accuracy=mean(context.accuracy),
            average_accuracy=mean(trailing(context.accuracy, adaptation.performance_window)),
            average_response_ms=mean(trailing(context.response_time_ms, adaptation.performance_window)),
            frustration_count=self.frustration_count(context.history),
            engagement=mean(trailing((*context.engagement, engagement), adaptation.engagement_window)),
        )

        scaffolding = int(clamp(path.scaffolding_level + triggers.scaffolding_delta, 0, 3))
        path = AdaptivePath.model_validate(
            {**path.model_dump(), "scaffolding_level": scaffolding}
        )

        snapshot = MetricsSnapshot(
            cognitive_load=load,
            comprehension_depth=depth,
            metacognition=metacognition,
            motivation=motivation,
            adaptive_path=path,
            event_count=context.sequence,
        )

        bound = path.adjustment_rate * 10
        difficulty_change = round_to(clamp(triggers.difficulty_delta, -bound, bound), 2)
        next_difficulty = round_to(clamp(path.recommended_difficulty + difficulty_change, 1, 10), 2)

        gamification = None
        if triggers.fired(AdaptiveAction.GAMIFY_NEXT):
            gamification = self.gamification_for(motivation, round_half_up(next_difficulty))

        decision = AdaptiveDecision(
            sequence=context.sequence,
            support=self._support_slots(event, load, scaffolding, triggers),
            difficulty_change=difficulty_change,
            support_level=self.support_level(scaffolding, triggers),
            actions=triggers.actions,
            content_modifications=triggers.modifications,
            parameter_adjustments={
                "complexity": triggers.complexity_delta,
                "novelty": triggers.novelty_delta,
                "scaffolding": triggers.scaffolding_delta,
            },
            personalized_strategies=self.personalized_strategies(load, depth, metacognition),
            next_problem=NextProblemSpec(
                subject=event.subject,
                topic=event.topic,
                difficulty=next_difficulty,
                complexity=int(clamp(path.complexity + triggers.complexity_delta, 1, 10)),
                grade_level=context.profile.grade_level,
                methods=tuple(methods),
                annotations=dict(event.annotations),
            ),
            gamification=gamification,
            degraded=degraded,
            diagnostics=(*lookups, *context.anomalies),
            metrics=snapshot,
        )

        logger.debug(
            "Event %d: load=%d difficulty=%.2f actions=%s",
            context.sequence,
            load.level,
            next_difficulty,
            [action.value for action in triggers.actions],
        )

        return PipelineOutcome(
            decision=decision,
            accuracy=event.accuracy,
            cognitive_load=load.level,
            engagement=engagement,
            comprehension=totals,
        )
