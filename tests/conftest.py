# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Unit tests (estimators, loop, projector, gateways, session manager)
- Integration tests (HTTP API)
"""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from src.core.learner_state import (
    AdaptationLoop,
    EnginePolicy,
    EstimationContext,
    LearnerProfile,
    LearningEvent,
    ProfileSource,
    SessionState,
)
from src.domains.learner_session import (
    ArchiveDispatcher,
    CatalogGateway,
    ProfileGateway,
    SessionManager,
)
from src.infrastructure.external import (
    InMemoryArchiveSink,
    InMemoryProfileStore,
    StaticContentCatalog,
)

SUBJECTS = ["math", "japanese", "science", "social_studies", "english"]
BASE_TIME = datetime(2025, 5, 1, 9, 0, tzinfo=timezone.utc)


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )


# =============================================================================
# Engine Fixtures
# =============================================================================


@pytest.fixture
def policy() -> EnginePolicy:
    """Provide the default engine policy."""
    return EnginePolicy()


@pytest.fixture
def loop(policy: EnginePolicy) -> AdaptationLoop:
    """Provide an adaptation loop on the default policy."""
    return AdaptationLoop(policy)


@pytest.fixture
def sample_profile() -> LearnerProfile:
    """Provide a sixth-grade learner at level 5 in math."""
    return LearnerProfile(
        learner_id="learner-001",
        grade_level=6,
        subject_levels={"math": {"current": 5, "target": 7}},
    )


@pytest.fixture
def event_payload() -> Callable[..., dict[str, Any]]:
    """Provide a factory of raw event payloads.

    The n-th payload is stamped n minutes after BASE_TIME. Keyword
    arguments override any field.
    """

    def _payload(index: int = 0, **overrides: Any) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "problem_id": f"problem-{index:03d}",
            "subject": "math",
            "topic": "ratio",
            "difficulty": 5,
            "is_correct": True,
            "response_time_ms": 20_000,
            "confidence": 4,
            "explanation_text": "",
            "timestamp": (BASE_TIME + timedelta(minutes=index)).isoformat(),
        }
        payload.update(overrides)
        return payload

    return _payload


@pytest.fixture
def make_event(
    event_payload: Callable[..., dict[str, Any]],
) -> Callable[..., LearningEvent]:
    """Provide a factory of validated LearningEvents for session-test."""

    def _make(index: int = 0, **overrides: Any) -> LearningEvent:
        payload = event_payload(index, **overrides)
        payload.setdefault("session_id", "session-test")
        return LearningEvent.model_validate(payload)

    return _make


@pytest.fixture
def new_session(
    loop: AdaptationLoop, sample_profile: LearnerProfile
) -> Callable[..., SessionState]:
    """Provide a factory of empty SessionStates."""

    def _new(profile: LearnerProfile | None = None) -> SessionState:
        profile = profile or sample_profile
        return SessionState(
            session_id="session-test",
            learner_id=profile.learner_id,
            subject="math",
            profile=profile,
            profile_source=ProfileSource.LIVE,
            opened_at=BASE_TIME,
            metrics=loop.initial_snapshot(profile, "math"),
        )

    return _new


@pytest.fixture
def build_context(
    loop: AdaptationLoop, new_session: Callable[..., SessionState]
) -> Callable[..., EstimationContext]:
    """Provide a builder of the estimation context for the last of some events.

    Every event but the last is run through the loop and committed, so
    the context reflects a real session history.
    """

    def _build(
        events: list[LearningEvent], profile: LearnerProfile | None = None
    ) -> EstimationContext:
        session = new_session(profile)
        for event in events[:-1]:
            session.commit(event, loop.run(session.context_for(event)))
        return session.context_for(events[-1])

    return _build


# =============================================================================
# Session Manager Fixtures
# =============================================================================


@pytest.fixture
def archive_sink() -> InMemoryArchiveSink:
    """Provide an in-memory archive sink."""
    return InMemoryArchiveSink()


@pytest.fixture
def profile_store(sample_profile: LearnerProfile) -> InMemoryProfileStore:
    """Provide a profile store holding the sample profile."""
    return InMemoryProfileStore([sample_profile], auto_provision=True)


@pytest.fixture
def make_manager(
    policy: EnginePolicy,
    archive_sink: InMemoryArchiveSink,
    profile_store: InMemoryProfileStore,
) -> Callable[..., SessionManager]:
    """Provide a factory of session managers with zero retry backoff."""

    def _make(
        store: Any = None, catalog: Any = None, sink: Any = None, **kwargs: Any
    ) -> SessionManager:
        return SessionManager(
            profiles=ProfileGateway(
                profile_store if store is None else store,
                timeout_seconds=0.5,
                backoff_seconds=0,
            ),
            catalog=CatalogGateway(
                StaticContentCatalog() if catalog is None else catalog,
                timeout_seconds=0.5,
            ),
            archive=ArchiveDispatcher(
                archive_sink if sink is None else sink,
                timeout_seconds=0.5,
                backoff_seconds=0,
            ),
            subjects=SUBJECTS,
            policy=policy,
            **kwargs,
        )

    return _make


@pytest.fixture
def manager(make_manager: Callable[..., SessionManager]) -> SessionManager:
    """Provide a session manager on in-memory collaborators."""
    return make_manager()
