# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Learner session domain.

Session lifecycle on top of the learner-state engine:
- SessionManager: open, process events, snapshot, project, close
- ProfileGateway / CatalogGateway: bounded lookups with fallbacks
- ArchiveDispatcher: background delivery of closed session records
"""

from src.domains.learner_session.gateways import (
    ArchiveDispatcher,
    CatalogGateway,
    MethodLookup,
    ProfileGateway,
    ProfileLookup,
)
from src.domains.learner_session.service import SessionManager

__all__ = [
    "SessionManager",
    "ProfileGateway",
    "ProfileLookup",
    "CatalogGateway",
    "MethodLookup",
    "ArchiveDispatcher",
]
