# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Learner session service.

SessionManager owns every live SessionState. It is the only component
that mutates session state, and it does so under the session's own
asyncio.Lock:

    open()          -> profile lookup (retry, fallback), initial snapshot
    process_event() -> validate, catalog lookup, adaptation loop, commit
    snapshot()      -> latest MetricsSnapshot
    project()       -> PredictiveProjection over the history so far
    close()         -> waits for in-flight events, freezes the record,
                       hands it to the archive dispatcher

Sessions never share mutable state, so calls on different sessions never
wait on each other. A closed session leaves the live map: its frozen
record stays readable (snapshot, project) in a bounded retention of the
most recently closed sessions, and further events or closes raise
SessionClosedError.

Example:
    manager = SessionManager.from_settings(get_settings())
    opened = await manager.open("learner-1", "math")
    decision = await manager.process_event(opened.session_id, event_payload)
    record = await manager.close(opened.session_id)
"""

import logging
from collections import OrderedDict
from collections.abc import Mapping
from typing import Any
from uuid import uuid4

from src.core.config.settings import Settings
from src.core.learner_state.adaptation import AdaptationLoop
from src.core.learner_state.constants import DiagnosticKind, LoopPhase, SessionStatus
from src.core.learner_state.errors import SessionClosedError, SessionNotFoundError
from src.core.learner_state.models import (
    AdaptiveDecision,
    DiagnosticEntry,
    LearningEvent,
    MetricsSnapshot,
    OpenedSession,
    PredictiveProjection,
    SessionRecord,
)
from src.core.learner_state.policy import EnginePolicy, load_policy
from src.core.learner_state.projector import PredictiveProjector
from src.core.learner_state.state import ClosedSession, SessionState
from src.core.learner_state.validator import EventValidator
from src.domains.learner_session.gateways import (
    ArchiveDispatcher,
    CatalogGateway,
    ProfileGateway,
)
from src.infrastructure.external import (
    ArchivalSink,
    ContentCatalog,
    InMemoryArchiveSink,
    InMemoryProfileStore,
    JsonLinesArchiveSink,
    ProfileStore,
    StaticContentCatalog,
)
from src.utils.datetime import utc_now
from src.utils.logging import bind_session_context, clear_context

logger = logging.getLogger(__name__)


class SessionManager:
    """Creates, drives and closes learner sessions."""

    def __init__(
        self,
        *,
        profiles: ProfileGateway,
        catalog: CatalogGateway,
        archive: ArchiveDispatcher,
        subjects: list[str],
        policy: EnginePolicy | None = None,
        closed_retention: int = 1000,
    ) -> None:
        """Initialize the session manager.

        Args:
            profiles: Gateway to the learner profile store.
            catalog: Gateway to the content catalog.
            archive: Dispatcher for closed session records.
            subjects: Subjects sessions and events may use.
            policy: Engine policy; defaults to the built-in values.
            closed_retention: Closed sessions kept readable; the oldest
                are dropped beyond this count.
        """
        self._policy = policy or EnginePolicy()
        self._loop = AdaptationLoop(self._policy)
        self._projector = PredictiveProjector(self._policy.projection)
        self._validator = EventValidator(subjects)
        self._profiles = profiles
        self._catalog = catalog
        self._archive = archive
        self._sessions: dict[str, SessionState] = {}
        self._closed: OrderedDict[str, ClosedSession] = OrderedDict()
        self._closed_retention = closed_retention

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        policy: EnginePolicy | None = None,
        profile_store: ProfileStore | None = None,
        content_catalog: ContentCatalog | None = None,
        sink: ArchivalSink | None = None,
    ) -> "SessionManager":
        """Build a manager wired to the configured collaborators.

        Collaborators not passed in get the in-process adapters: an
        auto-provisioning profile store, the static catalog and an
        in-memory (or JSON-lines, when archive_path is set) sink.

        Args:
            settings: Application settings.
            policy: Engine policy; loaded from settings.engine.policy_path
                when omitted.
            profile_store: Profile store to use.
            content_catalog: Content catalog to use.
            sink: Archival sink to use.

        Returns:
            Configured SessionManager.
        """
        external = settings.external
        if profile_store is None:
            profile_store = InMemoryProfileStore(auto_provision=True)
        if content_catalog is None:
            content_catalog = StaticContentCatalog()
        if sink is None:
            if external.archive_path is not None:
                sink = JsonLinesArchiveSink(external.archive_path)
            else:
                sink = InMemoryArchiveSink()

        return cls(
            profiles=ProfileGateway(
                profile_store,
                timeout_seconds=external.profile_timeout_seconds,
                max_attempts=external.profile_max_attempts,
                backoff_seconds=external.profile_backoff_seconds,
                backoff_max_seconds=external.profile_backoff_max_seconds,
            ),
            catalog=CatalogGateway(
                content_catalog,
                timeout_seconds=external.catalog_timeout_seconds,
            ),
            archive=ArchiveDispatcher(
                sink,
                timeout_seconds=external.archive_timeout_seconds,
                max_attempts=external.archive_max_attempts,
                backoff_seconds=external.archive_backoff_seconds,
                buffer_size=external.archive_buffer_size,
            ),
            subjects=settings.engine.subjects,
            policy=policy or load_policy(settings.engine.policy_path),
            closed_retention=settings.engine.closed_session_retention,
        )

    @property
    def policy(self) -> EnginePolicy:
        """Get the engine policy."""
        return self._policy

    @property
    def archive(self) -> ArchiveDispatcher:
        """Get the archive dispatcher."""
        return self._archive

    @property
    def subjects(self) -> list[str]:
        """Get the accepted subjects."""
        return self._validator.subjects

    def __len__(self) -> int:
        return len(self._sessions)

    @property
    def closed_count(self) -> int:
        """Number of closed sessions still readable."""
        return len(self._closed)

    def get_session(self, session_id: str) -> SessionState:
        """Get an open session by id.

        Raises:
            SessionNotFoundError: If the id is unknown.
            SessionClosedError: If the session was closed.
        """
        session = self._sessions.get(session_id)
        if session is None:
            if session_id in self._closed:
                raise SessionClosedError(session_id)
            raise SessionNotFoundError(session_id)
        return session

    def _retain(self, closed: ClosedSession) -> None:
        self._closed[closed.record.session_id] = closed
        while len(self._closed) > self._closed_retention:
            evicted, _ = self._closed.popitem(last=False)
            logger.debug("Dropped closed session %s from retention", evicted)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def open(self, learner_id: str, subject: str) -> OpenedSession:
        """Open a session for a learner and subject.

        The profile lookup never fails the open: after the retries are
        exhausted the session runs on a cached or default profile and
        all of its decisions are marked degraded.

        Args:
            learner_id: Learner starting the session.
            subject: Session subject.

        Returns:
            OpenedSession with the new id and profile provenance.

        Raises:
            UnknownSubjectError: If the subject is not configured.
        """
        subject = self._validator.validate_subject(subject)
        lookup = await self._profiles.get_profile(learner_id)

        session_id = str(uuid4())
        session = SessionState(
            session_id=session_id,
            learner_id=learner_id,
            subject=subject,
            profile=lookup.profile,
            profile_source=lookup.source,
            opened_at=utc_now(),
            metrics=self._loop.initial_snapshot(lookup.profile, subject),
        )
        self._sessions[session_id] = session

        logger.info(
            "Opened session %s for learner %s (%s, profile=%s)",
            session_id,
            learner_id,
            subject,
            lookup.source.value,
        )
        return OpenedSession(
            session_id=session_id,
            learner_id=learner_id,
            subject=subject,
            profile_source=lookup.source,
            degraded=lookup.degraded,
        )

    async def process_event(
        self, session_id: str, raw: LearningEvent | Mapping[str, Any]
    ) -> AdaptiveDecision:
        """Process one learning event and decide the next step.

        Events of one session are handled one at a time in arrival
        order. A rejected event leaves the session untouched.

        Args:
            session_id: Target session.
            raw: Event model or mapping.

        Returns:
            The AdaptiveDecision for the event.

        Raises:
            SessionNotFoundError: If the id is unknown.
            SessionClosedError: If the session is closed.
            EventValidationError: If the event is rejected.
        """
        session = self.get_session(session_id)

        async with session.lock:
            # Closed while this call waited for the lock
            if session.is_closed:
                raise SessionClosedError(session_id)

            bind_session_context(session_id, session.learner_id)
            session.phase = LoopPhase.PROCESSING
            try:
                event = self._validator.validate(
                    raw,
                    session_id=session_id,
                    previous_timestamp=session.last_timestamp,
                )

                lookup = await self._catalog.methods_for(
                    event.subject, event.topic, session.profile.grade_level
                )
                diagnostics: list[DiagnosticEntry] = []
                if session.profile_degraded:
                    diagnostics.append(self._profile_diagnostic(session))
                if lookup.diagnostic is not None:
                    diagnostics.append(lookup.diagnostic)

                outcome = self._loop.run(
                    session.context_for(event),
                    methods=lookup.methods,
                    degraded=session.profile_degraded or lookup.degraded,
                    lookups=diagnostics,
                )
                session.commit(event, outcome)
            finally:
                session.phase = LoopPhase.IDLE
                clear_context()

        return outcome.decision

    @staticmethod
    def _profile_diagnostic(session: SessionState) -> DiagnosticEntry:
        return DiagnosticEntry(
            kind=DiagnosticKind.EXTERNAL_LOOKUP_DEGRADED,
            source="profile_store",
            detail=f"using {session.profile_source.value} profile",
        )

    def snapshot(self, session_id: str) -> MetricsSnapshot:
        """Latest metrics of a session, open or closed.

        Raises:
            SessionNotFoundError: If the id is unknown or no longer retained.
        """
        closed = self._closed.get(session_id)
        if closed is not None:
            return closed.record.final_metrics
        return self.get_session(session_id).metrics

    def project(self, session_id: str) -> PredictiveProjection:
        """Project exam readiness and time to mastery for a session.

        Read-only; the session is not modified.

        Raises:
            SessionNotFoundError: If the id is unknown or no longer retained.
        """
        closed = self._closed.get(session_id)
        if closed is not None:
            return self._projector.project(
                history=closed.record.events,
                accuracy=closed.accuracy,
                metrics=closed.record.final_metrics,
                profile=closed.profile,
                subject=closed.record.subject,
            )

        session = self.get_session(session_id)
        return self._projector.project(
            history=tuple(session.history),
            accuracy=tuple(session.accuracy),
            metrics=session.metrics,
            profile=session.profile,
            subject=session.subject,
        )

    async def close(self, session_id: str) -> SessionRecord:
        """Close a session and archive its record.

        Waits for an in-flight event to finish. The archive delivery is
        scheduled in the background and can never undo the closure.

        Args:
            session_id: Session to close.

        Returns:
            The immutable SessionRecord.

        Raises:
            SessionNotFoundError: If the id is unknown.
            SessionClosedError: If the session was already closed.
        """
        session = self.get_session(session_id)

        async with session.lock:
            if session.is_closed:
                raise SessionClosedError(session_id)

            session.status = SessionStatus.CLOSED
            record = SessionRecord(
                session_id=session.session_id,
                learner_id=session.learner_id,
                subject=session.subject,
                profile_source=session.profile_source,
                degraded=session.profile_degraded,
                opened_at=session.opened_at,
                closed_at=utc_now(),
                events=tuple(session.history),
                decision_count=session.decision_count,
                final_metrics=session.metrics,
            )
            del self._sessions[session_id]
            self._retain(ClosedSession(record=record, profile=session.profile))

        logger.info(
            "Closed session %s after %d events", session_id, record.decision_count
        )
        self._archive.submit(record)
        return record

    async def shutdown(self) -> None:
        """Wait for pending archive deliveries and retry the buffer."""
        await self._archive.drain()
        flushed = await self._archive.flush()
        logger.info(
            "Session manager stopped: %d open, %d closed retained, %d archived on shutdown, %d pending",
            len(self._sessions),
            len(self._closed),
            flushed,
            self._archive.pending,
        )
