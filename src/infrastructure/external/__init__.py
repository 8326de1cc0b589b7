# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""External collaborators of the learner-state engine.

Each collaborator is an abstract base class with in-process adapters:
- ProfileStore: InMemoryProfileStore
- ContentCatalog: StaticContentCatalog
- ArchivalSink: InMemoryArchiveSink, JsonLinesArchiveSink

Timeouts, retries and fallbacks are applied by the gateways in
src.domains.learner_session, not by the adapters.
"""

from src.infrastructure.external.archive import (
    ArchivalSink,
    InMemoryArchiveSink,
    JsonLinesArchiveSink,
)
from src.infrastructure.external.content_catalog import (
    DEFAULT_METHODS,
    ContentCatalog,
    StaticContentCatalog,
)
from src.infrastructure.external.profile_store import InMemoryProfileStore, ProfileStore

__all__ = [
    # Profiles
    "ProfileStore",
    "InMemoryProfileStore",
    # Content
    "ContentCatalog",
    "StaticContentCatalog",
    "DEFAULT_METHODS",
    # Archive
    "ArchivalSink",
    "InMemoryArchiveSink",
    "JsonLinesArchiveSink",
]
