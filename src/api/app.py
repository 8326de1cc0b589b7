# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI Application Factory.

This module provides the main application factory for the learner-state
engine API.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from src.api.routes import health
from src.api.v1 import router as v1_router
from src.core.config import Settings, get_settings
from src.domains.learner_session import SessionManager
from src.utils.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Creates the session manager on startup (unless one was injected
    before startup) and drains pending archive deliveries on shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        None during application runtime.
    """
    settings: Settings = app.state.settings
    logger.info(
        "Starting learner-state API (environment=%s, debug=%s)",
        settings.environment,
        settings.debug,
    )

    # =========================================================================
    # Startup
    # =========================================================================

    if getattr(app.state, "session_manager", None) is None:
        app.state.session_manager = SessionManager.from_settings(settings)
    manager: SessionManager = app.state.session_manager
    logger.info("Session manager ready for subjects: %s", ", ".join(manager.subjects))

    yield

    # =========================================================================
    # Shutdown
    # =========================================================================

    try:
        await manager.shutdown()
    except Exception as e:
        logger.warning("Error draining archive deliveries: %s", str(e))

    logger.info("Shutting down learner-state API")


def create_app(
    settings: Settings | None = None,
    session_manager: SessionManager | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings; defaults to get_settings().
        session_manager: Pre-built session manager, mainly for tests.
            Built from settings during startup when omitted.

    Returns:
        Configured FastAPI application instance.
    """
    settings = settings or get_settings()
    setup_logging(settings)

    app = FastAPI(
        title="Learner State API",
        description="Real-time learner-state estimation and adaptive difficulty",
        version="1.0.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
        redirect_slashes=False,
    )

    # =========================================================================
    # State
    # =========================================================================
    app.state.settings = settings
    app.state.session_manager = session_manager

    # =========================================================================
    # Routes
    # =========================================================================
    app.include_router(health.router, tags=["Health"])
    app.include_router(v1_router)

    return app
