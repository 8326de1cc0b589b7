# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Real-time learner-state engine.

This package maintains a multi-dimensional model of a learner during a
practice session and uses it to choose the next difficulty and support
strategy. Per event it runs:

- EventValidator: rejects malformed events before any state changes
- CognitiveLoadEstimator: 0-100 load with overload flags
- ComprehensionClassifier: surface/strategic/deep understanding
- MetacognitionAssessor: planning, monitoring, evaluation, strategy,
  awareness and regulation
- MotivationEstimator: intrinsic/extrinsic motivation, confidence,
  anxiety, flow
- AdaptiveDifficultyController: ZPD window, target difficulty, scaffolding
- AdaptationLoop: orchestrates the above and emits an AdaptiveDecision

PredictiveProjector extrapolates exam readiness and time to mastery on
demand. Session lifecycle, locking and external lookups live in
src.domains.learner_session.

Example usage:

    from src.core.learner_state import AdaptationLoop, load_policy

    loop = AdaptationLoop(load_policy(Path("config/engine/policy.yaml")))
    context = session.context_for(event)
    outcome = loop.run(context)
    session.commit(event, outcome)
    print(outcome.decision.actions)
"""

from src.core.learner_state.adaptation import AdaptationLoop, TriggerOutcome
from src.core.learner_state.constants import (
    AdaptiveAction,
    BehaviorSignal,
    ChallengeLevel,
    DepthBucket,
    DiagnosticKind,
    LoopPhase,
    MetacognitiveStage,
    MotivationType,
    ProfileSource,
    SessionStatus,
    StrugglingIndicator,
)
from src.core.learner_state.errors import (
    ArchiveDeliveryError,
    CatalogLookupError,
    EventValidationError,
    LearnerStateError,
    ProfileLookupError,
    SessionClosedError,
    SessionNotFoundError,
    UnknownSubjectError,
)
from src.core.learner_state.models import (
    AdaptiveDecision,
    AdaptivePath,
    CognitiveLoadReading,
    ComprehensionDepth,
    DiagnosticEntry,
    LearnerProfile,
    LearningEvent,
    MetacognitionScores,
    MetricsSnapshot,
    MotivationalState,
    OpenedSession,
    PredictiveProjection,
    SessionRecord,
)
from src.core.learner_state.policy import EnginePolicy, PolicyLoadError, load_policy
from src.core.learner_state.projector import PredictiveProjector
from src.core.learner_state.state import ClosedSession, EstimationContext, SessionState
from src.core.learner_state.validator import EventValidator

__all__ = [
    # Orchestration
    "AdaptationLoop",
    "TriggerOutcome",
    "PredictiveProjector",
    "EventValidator",
    # State
    "SessionState",
    "ClosedSession",
    "EstimationContext",
    # Policy
    "EnginePolicy",
    "load_policy",
    "PolicyLoadError",
    # Models
    "LearnerProfile",
    "LearningEvent",
    "MetricsSnapshot",
    "CognitiveLoadReading",
    "ComprehensionDepth",
    "MetacognitionScores",
    "MotivationalState",
    "AdaptivePath",
    "AdaptiveDecision",
    "DiagnosticEntry",
    "PredictiveProjection",
    "OpenedSession",
    "SessionRecord",
    # Enums
    "StrugglingIndicator",
    "BehaviorSignal",
    "AdaptiveAction",
    "SessionStatus",
    "LoopPhase",
    "DepthBucket",
    "ChallengeLevel",
    "MetacognitiveStage",
    "MotivationType",
    "DiagnosticKind",
    "ProfileSource",
    # Errors
    "LearnerStateError",
    "EventValidationError",
    "UnknownSubjectError",
    "SessionNotFoundError",
    "SessionClosedError",
    "ProfileLookupError",
    "CatalogLookupError",
    "ArchiveDeliveryError",
]
