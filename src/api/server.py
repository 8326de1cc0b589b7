# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Uvicorn entry point for the learner-state API.

Example:
    $ API_PORT=8080 learner-state-api
"""

import uvicorn

from src.core.config import get_settings


def main() -> None:
    """Serve the API with the host, port and workers from APISettings."""
    settings = get_settings()
    uvicorn.run(
        "src.api.app:create_app",
        factory=True,
        host=settings.api.host,
        port=settings.api.port,
        workers=settings.api.workers,
        reload=settings.api.reload,
        log_config=None,
    )


if __name__ == "__main__":
    main()
