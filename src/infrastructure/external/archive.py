# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Archival sinks for closed session records.

A sink receives every SessionRecord once its session is closed.
Implementations raise ArchiveDeliveryError when a record cannot be
stored; the archive dispatcher retries and buffers on its side.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path

from src.core.learner_state.errors import ArchiveDeliveryError
from src.core.learner_state.models import SessionRecord

logger = logging.getLogger(__name__)


class ArchivalSink(ABC):
    """Write interface for closed session records."""

    @abstractmethod
    async def emit(self, record: SessionRecord) -> None:
        """Store one session record.

        Raises:
            ArchiveDeliveryError: If the record cannot be stored.
        """
        ...


class InMemoryArchiveSink(ArchivalSink):
    """Sink that keeps records in a list."""

    def __init__(self) -> None:
        self.records: list[SessionRecord] = []

    async def emit(self, record: SessionRecord) -> None:
        self.records.append(record)


class JsonLinesArchiveSink(ArchivalSink):
    """Sink appending one JSON document per record to a file.

    File writes run in a worker thread so the event loop is never
    blocked on disk I/O.
    """

    def __init__(self, path: Path) -> None:
        """Initialize the sink.

        Args:
            path: File to append to. Parent directories are created.
        """
        self._path = path

    @property
    def path(self) -> Path:
        """Get the archive file path."""
        return self._path

    def _append(self, line: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(line + "\n")

    async def emit(self, record: SessionRecord) -> None:
        line = record.model_dump_json()
        try:
            await asyncio.to_thread(self._append, line)
        except OSError as e:
            raise ArchiveDeliveryError(record.session_id, str(e)) from e
        logger.debug("Archived session %s to %s", record.session_id, self._path)
