# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

This package contains all v1 API endpoint definitions.

Modules:
    learner_sessions: Learner session endpoints (open, events, snapshot,
        projection, close).
"""

from fastapi import APIRouter

from src.api.v1 import learner_sessions

# Create the main v1 router
router = APIRouter(prefix="/api/v1")

# Include domain routers
router.include_router(
    learner_sessions.router, prefix="/learner-sessions", tags=["Learner Sessions"]
)

__all__ = ["router"]
