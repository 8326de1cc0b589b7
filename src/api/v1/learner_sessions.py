# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Learner session API endpoints.

This module provides endpoints for learner sessions:
- POST / - Open a session for a learner and subject
- POST /{session_id}/events - Submit a learning event, get a decision
- GET /{session_id}/snapshot - Get the latest metrics snapshot
- GET /{session_id}/projection - Get exam readiness and time to mastery
- POST /{session_id}/close - Close the session

Example:
    POST /api/v1/learner-sessions/{session_id}/events
    {
        "problem_id": "ratio-014",
        "subject": "math",
        "topic": "ratio",
        "difficulty": 6,
        "is_correct": true,
        "response_time_ms": 42000,
        "confidence": 4,
        "explanation_text": "I drew a line segment diagram first",
        "timestamp": "2025-05-01T09:15:00Z"
    }
"""

import logging
from typing import Any, NoReturn

from fastapi import APIRouter, Body, Depends, HTTPException, status
from pydantic import BaseModel, Field

from src.api.dependencies import get_session_manager
from src.core.learner_state import (
    AdaptiveDecision,
    EventValidationError,
    MetricsSnapshot,
    OpenedSession,
    PredictiveProjection,
    SessionClosedError,
    SessionNotFoundError,
    SessionRecord,
)
from src.domains.learner_session import SessionManager

logger = logging.getLogger(__name__)

router = APIRouter()


class OpenSessionRequest(BaseModel):
    """Request to open a learner session."""

    learner_id: str = Field(min_length=1, description="Learner starting the session")
    subject: str = Field(min_length=1, description="Session subject")


def _raise_for(error: Exception) -> NoReturn:
    """Translate an engine error into an HTTPException."""
    if isinstance(error, EventValidationError):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": str(error), "errors": error.errors},
        ) from error
    if isinstance(error, SessionNotFoundError):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Learner session not found",
        ) from error
    if isinstance(error, SessionClosedError):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Learner session is closed",
        ) from error
    raise error


@router.post(
    "",
    response_model=OpenedSession,
    status_code=status.HTTP_201_CREATED,
    summary="Open learner session",
    description="Open a session. Falls back to a cached or default profile when the profile store is unavailable.",
)
async def open_session(
    data: OpenSessionRequest,
    manager: SessionManager = Depends(get_session_manager),
) -> OpenedSession:
    """Open a learner session.

    Args:
        data: Learner and subject.
        manager: Session manager.

    Returns:
        OpenedSession with the session id.

    Raises:
        HTTPException: If the subject is unknown.
    """
    logger.info("Opening session: learner=%s, subject=%s", data.learner_id, data.subject)
    try:
        return await manager.open(data.learner_id, data.subject)
    except EventValidationError as e:
        _raise_for(e)


@router.post(
    "/{session_id}/events",
    response_model=AdaptiveDecision,
    summary="Submit learning event",
    description="Process one learning event and return the adaptive decision for it.",
)
async def submit_event(
    session_id: str,
    event: dict[str, Any] = Body(...),
    manager: SessionManager = Depends(get_session_manager),
) -> AdaptiveDecision:
    """Submit a learning event.

    Args:
        session_id: The session ID.
        event: Raw learning event.
        manager: Session manager.

    Returns:
        AdaptiveDecision for the event.

    Raises:
        HTTPException: If the event is invalid, or the session is
            unknown or closed.
    """
    try:
        return await manager.process_event(session_id, event)
    except (EventValidationError, SessionNotFoundError, SessionClosedError) as e:
        _raise_for(e)


@router.get(
    "/{session_id}/snapshot",
    response_model=MetricsSnapshot,
    summary="Get metrics snapshot",
    description="Get the latest metrics of an open or closed session.",
)
async def get_snapshot(
    session_id: str,
    manager: SessionManager = Depends(get_session_manager),
) -> MetricsSnapshot:
    """Get the latest metrics snapshot.

    Raises:
        HTTPException: If session not found.
    """
    try:
        return manager.snapshot(session_id)
    except SessionNotFoundError as e:
        _raise_for(e)


@router.get(
    "/{session_id}/projection",
    response_model=PredictiveProjection,
    summary="Get predictive projection",
    description="Project exam readiness and time to mastery from the session so far.",
)
async def get_projection(
    session_id: str,
    manager: SessionManager = Depends(get_session_manager),
) -> PredictiveProjection:
    """Get the predictive projection.

    Raises:
        HTTPException: If session not found.
    """
    try:
        return manager.project(session_id)
    except SessionNotFoundError as e:
        _raise_for(e)


@router.post(
    "/{session_id}/close",
    response_model=SessionRecord,
    summary="Close learner session",
    description="Close the session and hand its record to the archive.",
)
async def close_session(
    session_id: str,
    manager: SessionManager = Depends(get_session_manager),
) -> SessionRecord:
    """Close a learner session.

    Args:
        session_id: The session ID.
        manager: Session manager.

    Returns:
        The session record.

    Raises:
        HTTPException: If the session is unknown or already closed.
    """
    try:
        return await manager.close(session_id)
    except (SessionNotFoundError, SessionClosedError) as e:
        _raise_for(e)
