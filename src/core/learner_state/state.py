# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Per-session state and the estimation context built from it.

SessionState is owned exclusively by the session manager and mutated
only through commit(). The estimators never see SessionState directly:
they receive an EstimationContext, a read-only view of the session as it
would look with the incoming event appended. On close a session is
reduced to a ClosedSession: the frozen record plus the profile snapshot.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from src.core.learner_state.constants import (
    DiagnosticKind,
    LoopPhase,
    ProfileSource,
    SessionStatus,
)
from src.core.learner_state.models import (
    AdaptiveDecision,
    DiagnosticEntry,
    LearnerProfile,
    LearningEvent,
    MetricsSnapshot,
    SessionRecord,
)
from src.utils.datetime import milliseconds_between


@dataclass(frozen=True)
class ComprehensionTotals:
    """Running comprehension bucket totals for a session."""

    surface: int = 0
    strategic: int = 0
    deep: int = 0
    connections: int = 0


@dataclass(frozen=True)
class EstimationContext:
    """Read-only view of a session with the incoming event appended.

    Attributes:
        profile: Learner profile snapshot taken at open.
        subject: Session subject.
        event: The event being processed.
        history: All accepted events, ending with `event`.
        accuracy: Per-event accuracy series, ending with `event`.
        response_time_ms: Per-event response times, ending with `event`.
        engagement: Engagement series of the previously accepted events.
        elapsed_ms: Session time elapsed at the end of `event`.
        comprehension: Bucket totals before `event`.
        anomalies: Computation anomalies recorded while estimating.
    """

    profile: LearnerProfile
    subject: str
    event: LearningEvent
    history: tuple[LearningEvent, ...]
    accuracy: tuple[float, ...]
    response_time_ms: tuple[int, ...]
    engagement: tuple[float, ...]
    elapsed_ms: int
    comprehension: ComprehensionTotals
    anomalies: list[DiagnosticEntry] = field(default_factory=list)

    @property
    def sequence(self) -> int:
        """1-based position of the current event."""
        return len(self.history)

    def record_anomaly(self, source: str, detail: str) -> None:
        """Record a computation anomaly for the decision diagnostics."""
        self.anomalies.append(
            DiagnosticEntry(
                kind=DiagnosticKind.COMPUTATION_ANOMALY,
                source=source,
                detail=detail,
            )
        )


@dataclass(frozen=True)
class PipelineOutcome:
    """Everything one pass of the adaptation loop produces for commit."""

    decision: AdaptiveDecision
    accuracy: float
    cognitive_load: int
    engagement: float
    comprehension: ComprehensionTotals


def session_elapsed_ms(history: tuple[LearningEvent, ...] | list[LearningEvent]) -> int:
    """Elapsed session time at the end of the last event.

    Uses the larger of the wall-clock span (first timestamp to last
    timestamp, plus the first response time) and the summed response
    times, so replaying events yields the same value.
    """
    if not history:
        return 0
    first, last = history[0], history[-1]
    span = milliseconds_between(first.timestamp, last.timestamp) + first.response_time_ms
    cumulative = sum(event.response_time_ms for event in history)
    return max(span, cumulative)


@dataclass
class SessionState:
    """Mutable state of one learner session."""

    session_id: str
    learner_id: str
    subject: str
    profile: LearnerProfile
    profile_source: ProfileSource
    opened_at: datetime
    metrics: MetricsSnapshot
    history: list[LearningEvent] = field(default_factory=list)
    accuracy: list[float] = field(default_factory=list)
    response_time_ms: list[int] = field(default_factory=list)
    cognitive_load: list[int] = field(default_factory=list)
    engagement: list[float] = field(default_factory=list)
    comprehension: ComprehensionTotals = field(default_factory=ComprehensionTotals)
    status: SessionStatus = SessionStatus.OPEN
    phase: LoopPhase = LoopPhase.IDLE
    last_decision: AdaptiveDecision | None = None
    decision_count: int = 0
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    @property
    def is_closed(self) -> bool:
        """Check if the session is closed."""
        return self.status == SessionStatus.CLOSED

    @property
    def profile_degraded(self) -> bool:
        """Whether the profile came from a fallback rather than the live store."""
        return self.profile_source != ProfileSource.LIVE

    @property
    def last_timestamp(self) -> datetime | None:
        """Timestamp of the latest accepted event."""
        return self.history[-1].timestamp if self.history else None

    def context_for(self, event: LearningEvent) -> EstimationContext:
        """Build the estimation context for an incoming event."""
        history = (*self.history, event)
        return EstimationContext(
            profile=self.profile,
            subject=self.subject,
            event=event,
            history=history,
            accuracy=(*self.accuracy, event.accuracy),
            response_time_ms=(*self.response_time_ms, event.response_time_ms),
            engagement=tuple(self.engagement),
            elapsed_ms=session_elapsed_ms(history),
            comprehension=self.comprehension,
        )

    def commit(self, event: LearningEvent, outcome: PipelineOutcome) -> None:
        """Append an accepted event and its outcome to the session.

        Args:
            event: The validated event.
            outcome: Result of the adaptation loop for that event.
        """
        self.history.append(event)
        self.accuracy.append(outcome.accuracy)
        self.response_time_ms.append(event.response_time_ms)
        self.cognitive_load.append(outcome.cognitive_load)
        self.engagement.append(outcome.engagement)
        self.comprehension = outcome.comprehension
        self.metrics = outcome.decision.metrics
        self.last_decision = outcome.decision
        self.decision_count += 1

    def to_dict(self) -> dict[str, Any]:
        """Summarize the session for logging and status endpoints."""
        return {
            "session_id": self.session_id,
            "learner_id": self.learner_id,
            "subject": self.subject,
            "status": self.status.value,
            "phase": self.phase.value,
            "event_count": len(self.history),
            "profile_source": self.profile_source.value,
            "opened_at": self.opened_at.isoformat(),
        }


@dataclass(frozen=True)
class ClosedSession:
    """What stays readable of a session after it is closed."""

    record: SessionRecord
    profile: LearnerProfile

    @property
    def accuracy(self) -> tuple[float, ...]:
        """Per-event accuracy series of the closed session."""
        return tuple(event.accuracy for event in self.record.events)
