# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Constants for the learner-state engine.

This module defines the enums used throughout the engine: event tags,
adaptive actions, session lifecycle states and the categorical outputs
of the estimators.

Numeric tuning constants do not live here. They are part of the
EnginePolicy table (see policy.py) so they can be overridden from YAML.
"""

from enum import Enum


class StrugglingIndicator(str, Enum):
    """Tags attached to an event flagging an observed difficulty pattern.

    Every indicator counts towards the frustration count. Hesitation and
    error indicators additionally feed the cognitive load estimate.
    """

    LONG_PAUSE = "long_pause"  # Idle for a long time before answering
    HESITATION = "hesitation"  # Started, stopped, restarted
    ERASED_ANSWER = "erased_answer"  # Wrote then erased an answer
    WRONG_DIRECTION = "wrong_direction"  # Pursued an approach that cannot work
    CALCULATION_ERROR = "calculation_error"
    MISREAD_PROBLEM = "misread_problem"
    CONCEPT_ERROR = "concept_error"  # Misapplied the underlying concept
    GAVE_UP = "gave_up"


HESITATION_INDICATORS = frozenset(
    {
        StrugglingIndicator.LONG_PAUSE,
        StrugglingIndicator.HESITATION,
        StrugglingIndicator.ERASED_ANSWER,
    }
)

ERROR_INDICATORS = frozenset(
    {
        StrugglingIndicator.WRONG_DIRECTION,
        StrugglingIndicator.CALCULATION_ERROR,
        StrugglingIndicator.MISREAD_PROBLEM,
        StrugglingIndicator.CONCEPT_ERROR,
    }
)


class BehaviorSignal(str, Enum):
    """Behavioral signals observed by the client alongside an answer."""

    VOLUNTARY_EXTENSION = "voluntary_extension"  # Chose to keep going past the plan
    HELP_REQUEST = "help_request"
    POSITIVE_EXPRESSION = "positive_expression"  # "I can do this"
    NEGATIVE_EXPRESSION = "negative_expression"  # "I'm bad at this"


class AdaptiveAction(str, Enum):
    """Trigger tags the adaptation loop can fire for a single event."""

    SUGGEST_BREAK = "suggest_break"
    ENCOURAGE = "encourage"
    GAMIFY_NEXT = "gamify_next"
    RAISE_CHALLENGE = "raise_challenge"


class SessionStatus(str, Enum):
    """Lifecycle status of a learner session."""

    OPEN = "open"
    CLOSED = "closed"


class LoopPhase(str, Enum):
    """Per-event phase of the adaptation loop for a session."""

    IDLE = "idle"
    PROCESSING = "processing"


class DepthBucket(str, Enum):
    """Comprehension depth bucket assigned to a single event."""

    SURFACE = "surface"
    STRATEGIC = "strategic"
    DEEP = "deep"


class ChallengeLevel(str, Enum):
    """Challenge band derived from the difficulty the learner is working at."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class MetacognitiveStage(str, Enum):
    """Development stage derived from the mean metacognition score."""

    NOVICE = "novice"
    DEVELOPING = "developing"
    PROFICIENT = "proficient"
    EXPERT = "expert"


class MotivationType(str, Enum):
    """Primary motivation type used to tailor gamification."""

    ACHIEVEMENT = "achievement"
    PROGRESS = "progress"
    COMPETITION = "competition"
    EXPLORATION = "exploration"


class DiagnosticKind(str, Enum):
    """Kinds of non-fatal conditions recorded on a decision."""

    COMPUTATION_ANOMALY = "computation_anomaly"
    EXTERNAL_LOOKUP_DEGRADED = "external_lookup_degraded"


class ProfileSource(str, Enum):
    """Where the learner profile used by a session came from."""

    LIVE = "live"
    CACHE = "cache"
    DEFAULT = "default"


# Content modification tags attached to decisions by the adaptation loop
MOD_REDUCE_COMPLEXITY = "reduce_complexity"
MOD_ADD_SCAFFOLDING = "add_scaffolding"
MOD_INTERACTIVE_ELEMENTS = "interactive_elements"
MOD_EXTENSION_PROBLEMS = "extension_problems"
