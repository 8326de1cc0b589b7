# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Data models for the learner-state engine.

Inputs (LearnerProfile, LearningEvent) and outputs (MetricsSnapshot,
AdaptiveDecision, PredictiveProjection, SessionRecord) are frozen pydantic
models. Outputs are always rebuilt from scratch, never patched, and every
bounded score is range-checked by its Field constraints.
"""

from datetime import datetime
from typing import Any, Literal, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from src.core.learner_state.constants import (
    ERROR_INDICATORS,
    HESITATION_INDICATORS,
    AdaptiveAction,
    BehaviorSignal,
    DiagnosticKind,
    MetacognitiveStage,
    MotivationType,
    ProfileSource,
    StrugglingIndicator,
)
from src.utils.datetime import ensure_utc


class ValueModel(BaseModel):
    """Immutable base for all engine value types."""

    model_config = ConfigDict(frozen=True)


def _tag_key(tag: Any) -> str:
    return str(getattr(tag, "value", tag))


# =============================================================================
# Learner Profile
# =============================================================================


class SubjectLevel(ValueModel):
    """Current and target proficiency for one subject (1-10)."""

    current: int = Field(default=5, ge=1, le=10)
    target: int = Field(default=7, ge=1, le=10)


class LearningPreferences(ValueModel):
    """Learner preferences owned by the profile store."""

    session_length: Literal["short", "medium", "long"] = "medium"
    difficulty_preference: Literal["easy", "balanced", "challenging"] = "balanced"


class LearnerProfile(ValueModel):
    """Long-lived learner data, referenced read-only by a session."""

    learner_id: str = Field(min_length=1)
    grade_level: int = Field(default=6, ge=1, le=12)
    subject_levels: dict[str, SubjectLevel] = Field(default_factory=dict)
    preferences: LearningPreferences = Field(default_factory=LearningPreferences)

    def level_for(self, subject: str) -> SubjectLevel:
        """Get the proficiency for a subject, defaulting when unknown."""
        return self.subject_levels.get(subject, SubjectLevel())

    @classmethod
    def default(cls, learner_id: str) -> "LearnerProfile":
        """Build the fallback profile used when no live or cached one exists."""
        return cls(learner_id=learner_id)


# =============================================================================
# Learning Event
# =============================================================================


class LearningEvent(ValueModel):
    """A single per-problem response, immutable once accepted.

    Accuracy comes from is_correct when the content layer judged the
    answer, otherwise from the learner's self-reported confidence.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    session_id: str = Field(min_length=1)
    problem_id: str = Field(min_length=1)
    subject: str = Field(min_length=1)
    topic: str = Field(min_length=1)
    difficulty: int = Field(ge=1, le=10)
    answer: str = ""
    is_correct: bool | None = None
    response_time_ms: int = Field(ge=0)
    confidence: int = Field(ge=1, le=5)
    explanation_text: str = ""
    solution_method: str | None = None
    strategies_used: tuple[str, ...] = ()
    struggling_indicators: tuple[StrugglingIndicator, ...] = ()
    behavior_signals: tuple[BehaviorSignal, ...] = ()
    hesitation_count: int = Field(default=0, ge=0, description="Pauses counted by the client")
    annotations: dict[str, Any] = Field(
        default_factory=dict, description="Opaque content-layer data, never inspected"
    )
    timestamp: datetime

    @field_validator("subject")
    @classmethod
    def _normalize_subject(cls, value: str) -> str:
        return value.lower()

    @field_validator("strategies_used", mode="before")
    @classmethod
    def _normalize_strategies(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple, set, frozenset)):
            return tuple(sorted({str(item).strip().lower() for item in value if str(item).strip()}))
        return value

    @field_validator("struggling_indicators", "behavior_signals")
    @classmethod
    def _dedupe_tags(cls, value: tuple[Any, ...]) -> tuple[Any, ...]:
        return tuple(sorted(set(value), key=_tag_key))

    @field_validator("timestamp")
    @classmethod
    def _timestamp_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @property
    def accuracy(self) -> float:
        """Per-event accuracy in [0, 1]."""
        if self.is_correct is not None:
            return 1.0 if self.is_correct else 0.0
        return (self.confidence - 1) / 4

    @property
    def correct(self) -> bool:
        """Whether the event counts as a correct answer."""
        if self.is_correct is not None:
            return self.is_correct
        return self.accuracy >= 0.5

    @property
    def hesitations(self) -> int:
        """Hesitation count from client counters or hesitation tags."""
        tagged = sum(1 for tag in self.struggling_indicators if tag in HESITATION_INDICATORS)
        return max(self.hesitation_count, tagged)

    @property
    def error_types(self) -> tuple[StrugglingIndicator, ...]:
        """Error-category tags on this event."""
        return tuple(tag for tag in self.struggling_indicators if tag in ERROR_INDICATORS)

    def has_signal(self, signal: BehaviorSignal) -> bool:
        """Check whether a behavioral signal was observed."""
        return signal in self.behavior_signals


# =============================================================================
# Metrics
# =============================================================================


class OverloadFlag(ValueModel):
    """A fired overload indicator with its matching suggestion."""

    indicator: str
    suggestion: str


class CognitiveLoadReading(ValueModel):
    """Cognitive load for the latest event."""

    level: int = Field(ge=0, le=100)
    optimal_range: tuple[int, int] = (30, 70)
    overload_flags: tuple[OverloadFlag, ...] = ()

    @property
    def in_optimal_range(self) -> bool:
        """Check if the load sits inside the optimal range."""
        return self.optimal_range[0] <= self.level <= self.optimal_range[1]


class ComprehensionDepth(ValueModel):
    """Running comprehension depth percentages for the session."""

    surface: int = Field(default=0, ge=0, le=100)
    strategic: int = Field(default=0, ge=0, le=100)
    deep: int = Field(default=0, ge=0, le=100)
    connections: int = Field(default=0, ge=0)
    transfer_ability: int = Field(default=0, ge=0, le=100)


class MetacognitionScores(ValueModel):
    """Six metacognitive competency sub-scores plus derived stage."""

    planning: int = Field(default=0, ge=0, le=100)
    monitoring: int = Field(default=0, ge=0, le=100)
    evaluation: int = Field(default=50, ge=0, le=100)
    strategy: int = Field(default=0, ge=0, le=100)
    awareness: int = Field(default=0, ge=0, le=100)
    regulation: int = Field(default=50, ge=0, le=100)
    stage: MetacognitiveStage = MetacognitiveStage.NOVICE
    strengths: tuple[str, ...] = ()
    weaknesses: tuple[str, ...] = ()


class MotivationalState(ValueModel):
    """Motivation and affect estimates (0-100 each)."""

    intrinsic: int = Field(default=0, ge=0, le=100)
    extrinsic: int = Field(default=100, ge=0, le=100)
    confidence: int = Field(default=0, ge=0, le=100)
    anxiety: int = Field(default=0, ge=0, le=100)
    flow: int = Field(default=0, ge=0, le=100)
    primary_type: MotivationType = MotivationType.EXPLORATION


class AdaptivePath(ValueModel):
    """Difficulty, ZPD and scaffolding recommendation."""

    recommended_difficulty: float = Field(ge=1, le=10)
    zpd: tuple[int, int]
    scaffolding_level: int = Field(ge=0, le=3)
    adjustment_rate: float = Field(default=0.1, ge=0, le=1)
    complexity: int = Field(ge=1, le=10)
    strategies: tuple[str, ...] = ()
    recommended_breaks: tuple[int, ...] = ()
    justification: str = ""
    risk_factors: tuple[str, ...] = ()

    @model_validator(mode="after")
    def _difficulty_inside_zpd(self) -> Self:
        lower, upper = self.zpd
        if not 1 <= lower <= upper <= 10:
            raise ValueError(f"invalid ZPD window {self.zpd}")
        if not lower <= self.recommended_difficulty <= upper:
            raise ValueError(
                f"recommended difficulty {self.recommended_difficulty} outside ZPD {self.zpd}"
            )
        return self


class MetricsSnapshot(ValueModel):
    """Full multi-dimensional learner model after an event."""

    cognitive_load: CognitiveLoadReading
    comprehension_depth: ComprehensionDepth
    metacognition: MetacognitionScores
    motivation: MotivationalState
    adaptive_path: AdaptivePath
    event_count: int = Field(default=0, ge=0)


# =============================================================================
# Decisions
# =============================================================================


class DiagnosticEntry(ValueModel):
    """A non-fatal condition recorded while producing a decision."""

    kind: DiagnosticKind
    source: str
    detail: str


class SupportSlots(ValueModel):
    """Immediate support slots, filled with content keys for the content layer."""

    hint: str | None = None
    encouragement: str | None = None
    clarification: str | None = None
    next_question: str | None = None


class NextProblemSpec(ValueModel):
    """Hint for the content catalog about the next problem to serve."""

    subject: str
    topic: str
    difficulty: float = Field(ge=1, le=10)
    complexity: int = Field(ge=1, le=10)
    grade_level: int = Field(ge=1, le=12)
    methods: tuple[str, ...] = ()
    annotations: dict[str, Any] = Field(default_factory=dict)


class GamificationHint(ValueModel):
    """Gamification adaptation chosen from the primary motivation type."""

    motivation_type: MotivationType
    challenge_level: int = Field(ge=1, le=10)
    reward_system: str
    competitive_elements: tuple[str, ...] = ()
    narrative_theme: str
    feedback_style: str


class AdaptiveDecision(ValueModel):
    """Output of the adaptation loop for one accepted event."""

    sequence: int = Field(ge=1, description="1-based position of the event in the session")
    support: SupportSlots = Field(default_factory=SupportSlots)
    difficulty_change: float = 0.0
    support_level: int = Field(ge=0, le=5)
    actions: tuple[AdaptiveAction, ...] = ()
    content_modifications: tuple[str, ...] = ()
    parameter_adjustments: dict[str, int] = Field(default_factory=dict)
    personalized_strategies: tuple[str, ...] = ()
    next_problem: NextProblemSpec
    gamification: GamificationHint | None = None
    degraded: bool = False
    diagnostics: tuple[DiagnosticEntry, ...] = ()
    metrics: MetricsSnapshot


# =============================================================================
# Projection
# =============================================================================


class LearningEfficiency(ValueModel):
    """Retention, acquisition and mastery estimates for the session."""

    retention_rate: float = Field(ge=0, le=1)
    acquisition_speed: float = Field(ge=0, description="Concepts per minute")
    error_patterns: dict[str, int] = Field(default_factory=dict)
    mastery_prediction: float = Field(ge=0, le=1)


class ExamReadiness(ValueModel):
    """Projected exam score with its confidence band."""

    estimated_score: int = Field(ge=0, le=100)
    confidence_interval: tuple[int, int]
    projected_accuracy: float = Field(ge=0, le=1)
    trend_slope: float
    strong_areas: tuple[str, ...] = ()
    risk_areas: tuple[str, ...] = ()


class TimeToMastery(ValueModel):
    """Estimated minutes to master each topic seen in the session."""

    topics: dict[str, int] = Field(default_factory=dict)
    total_minutes: int = Field(default=0, ge=0)
    factors: tuple[str, ...] = ()


class OptimizationPotential(ValueModel):
    """Gap between current and achievable learning efficiency."""

    current_efficiency: int = Field(ge=0, le=100)
    max_potential: int = Field(ge=0, le=100)
    bottlenecks: tuple[str, ...] = ()
    improvements: tuple[str, ...] = ()


class PredictiveProjection(ValueModel):
    """Read-only extrapolation of a session's metric history."""

    exam_readiness: ExamReadiness
    time_to_mastery: TimeToMastery
    learning_efficiency: LearningEfficiency
    optimization: OptimizationPotential
    based_on_events: int = Field(ge=0)


# =============================================================================
# Session lifecycle
# =============================================================================


class OpenedSession(ValueModel):
    """Result of opening a session."""

    session_id: str
    learner_id: str
    subject: str
    profile_source: ProfileSource
    degraded: bool


class SessionRecord(ValueModel):
    """Immutable archive record emitted when a session closes."""

    session_id: str
    learner_id: str
    subject: str
    profile_source: ProfileSource
    degraded: bool
    opened_at: datetime
    closed_at: datetime
    events: tuple[LearningEvent, ...] = ()
    decision_count: int = Field(ge=0)
    final_metrics: MetricsSnapshot
