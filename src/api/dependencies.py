# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependencies.

This module provides dependency functions for FastAPI endpoints.

Example:
    @router.get("/{session_id}/snapshot")
    async def get_snapshot(
        session_id: str,
        manager: SessionManager = Depends(get_session_manager),
    ):
        ...
"""

import logging

from fastapi import HTTPException, Request, status

from src.domains.learner_session import SessionManager

logger = logging.getLogger(__name__)


def get_session_manager(request: Request) -> SessionManager:
    """Get the application's session manager.

    Args:
        request: HTTP request.

    Returns:
        SessionManager created during application startup.

    Raises:
        HTTPException: If the application has not finished starting.
    """
    manager: SessionManager | None = getattr(request.app.state, "session_manager", None)
    if manager is None:
        logger.error("Session manager requested before startup completed")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Session manager not initialized",
        )
    return manager
