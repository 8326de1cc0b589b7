# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Gateways wrapping the engine's external collaborators.

Every external call is bounded by a timeout. Failures never reach the
session manager's callers:

- ProfileGateway retries the profile store with exponential backoff,
  then falls back to the last profile it saw for the learner, then to
  the default profile.
- CatalogGateway serves the last method list it saw for the same
  subject, topic and grade when the catalog is slow or failing.
- ArchiveDispatcher delivers closed session records in the background,
  retrying and then buffering them locally until the next delivery or
  flush() succeeds.
"""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.core.learner_state.constants import DiagnosticKind, ProfileSource
from src.core.learner_state.errors import (
    ArchiveDeliveryError,
    ProfileLookupError,
)
from src.core.learner_state.models import DiagnosticEntry, LearnerProfile, SessionRecord
from src.infrastructure.external import ArchivalSink, ContentCatalog, ProfileStore

logger = logging.getLogger(__name__)

# Failures worth another attempt against the same collaborator
_TRANSIENT_ERRORS = (asyncio.TimeoutError, OSError)


# =============================================================================
# Profile lookup
# =============================================================================


@dataclass(frozen=True)
class ProfileLookup:
    """Profile returned to the session manager with its provenance."""

    profile: LearnerProfile
    source: ProfileSource
    diagnostic: DiagnosticEntry | None = None

    @property
    def degraded(self) -> bool:
        """Whether the profile is a cached or default fallback."""
        return self.source != ProfileSource.LIVE


class ProfileGateway:
    """Timeout, retry and fallback around a ProfileStore."""

    def __init__(
        self,
        store: ProfileStore,
        *,
        timeout_seconds: float = 2.0,
        max_attempts: int = 3,
        backoff_seconds: float = 0.2,
        backoff_max_seconds: float = 2.0,
    ) -> None:
        """Initialize the gateway.

        Args:
            store: Profile store to query.
            timeout_seconds: Timeout of each attempt.
            max_attempts: Attempts before falling back.
            backoff_seconds: Multiplier of the exponential backoff.
            backoff_max_seconds: Upper bound of a single backoff.
        """
        self._store = store
        self._timeout = timeout_seconds
        self._max_attempts = max_attempts
        self._backoff = backoff_seconds
        self._backoff_max = backoff_max_seconds
        self._last_known: dict[str, LearnerProfile] = {}

    async def _fetch(self, learner_id: str) -> LearnerProfile:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=self._backoff, max=self._backoff_max),
            retry=retry_if_exception_type((ProfileLookupError, *_TRANSIENT_ERRORS)),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.debug(
                        "Retrying profile lookup for %s (attempt %d)",
                        learner_id,
                        attempt.retry_state.attempt_number,
                    )
                return await asyncio.wait_for(
                    self._store.get_profile(learner_id), timeout=self._timeout
                )
        raise ProfileLookupError(learner_id, "no attempt made")

    async def get_profile(self, learner_id: str) -> ProfileLookup:
        """Fetch a profile, falling back instead of failing.

        Args:
            learner_id: Learner to look up.

        Returns:
            ProfileLookup with source LIVE, CACHE or DEFAULT.
        """
        try:
            profile = await self._fetch(learner_id)
        except Exception as e:
            reason = str(e) or type(e).__name__
            cached = self._last_known.get(learner_id)
            source = ProfileSource.CACHE if cached is not None else ProfileSource.DEFAULT
            logger.warning(
                "Profile lookup for %s failed after %d attempts, using %s profile: %s",
                learner_id,
                self._max_attempts,
                source.value,
                reason,
            )
            return ProfileLookup(
                profile=cached or LearnerProfile.default(learner_id),
                source=source,
                diagnostic=DiagnosticEntry(
                    kind=DiagnosticKind.EXTERNAL_LOOKUP_DEGRADED,
                    source="profile_store",
                    detail=f"using {source.value} profile: {reason}",
                ),
            )

        self._last_known[learner_id] = profile
        return ProfileLookup(profile=profile, source=ProfileSource.LIVE)


# =============================================================================
# Content catalog
# =============================================================================


@dataclass(frozen=True)
class MethodLookup:
    """Applicable methods with an optional degradation diagnostic."""

    methods: tuple[str, ...]
    diagnostic: DiagnosticEntry | None = None

    @property
    def degraded(self) -> bool:
        """Whether the methods came from cache or are missing."""
        return self.diagnostic is not None


class CatalogGateway:
    """Timeout and last-known-good cache around a ContentCatalog."""

    def __init__(self, catalog: ContentCatalog, *, timeout_seconds: float = 1.0) -> None:
        """Initialize the gateway.

        Args:
            catalog: Content catalog to query.
            timeout_seconds: Timeout of a lookup.
        """
        self._catalog = catalog
        self._timeout = timeout_seconds
        self._cache: dict[tuple[str, str, int], tuple[str, ...]] = {}

    async def methods_for(self, subject: str, topic: str, grade: int) -> MethodLookup:
        """List applicable methods, serving the cache on failure.

        Args:
            subject: Problem subject.
            topic: Problem topic.
            grade: Learner grade level.

        Returns:
            MethodLookup; degraded when the live lookup failed.
        """
        key = (subject, topic, grade)
        try:
            methods = await asyncio.wait_for(
                self._catalog.list_applicable_methods(subject, topic, grade),
                timeout=self._timeout,
            )
        except Exception as e:
            reason = str(e) or type(e).__name__
            cached = self._cache.get(key)
            logger.warning(
                "Catalog lookup for %s/%s failed (%s), %s",
                subject,
                topic,
                reason,
                "serving cached methods" if cached is not None else "no cached methods",
            )
            return MethodLookup(
                methods=cached or (),
                diagnostic=DiagnosticEntry(
                    kind=DiagnosticKind.EXTERNAL_LOOKUP_DEGRADED,
                    source="content_catalog",
                    detail=f"{'cached' if cached is not None else 'no'} methods: {reason}",
                ),
            )

        self._cache[key] = tuple(methods)
        return MethodLookup(methods=tuple(methods))


# =============================================================================
# Archive delivery
# =============================================================================


class ArchiveDispatcher:
    """Fire-and-forget delivery of session records to an ArchivalSink.

    submit() returns immediately. Records the sink rejects after all
    attempts are kept in a bounded buffer (oldest dropped first) and
    retried before the next delivery or on flush().
    """

    def __init__(
        self,
        sink: ArchivalSink,
        *,
        timeout_seconds: float = 5.0,
        max_attempts: int = 3,
        backoff_seconds: float = 0.5,
        backoff_max_seconds: float = 5.0,
        buffer_size: int = 1000,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            sink: Archival sink receiving records.
            timeout_seconds: Timeout of each delivery attempt.
            max_attempts: Attempts before a record is buffered.
            backoff_seconds: Multiplier of the exponential backoff.
            backoff_max_seconds: Upper bound of a single backoff.
            buffer_size: Maximum number of buffered records.
        """
        self._sink = sink
        self._timeout = timeout_seconds
        self._max_attempts = max_attempts
        self._backoff = backoff_seconds
        self._backoff_max = backoff_max_seconds
        self._buffer: deque[SessionRecord] = deque(maxlen=buffer_size)
        self._tasks: set[asyncio.Task[bool]] = set()
        self._flush_lock = asyncio.Lock()
        self._delivered = 0

    @property
    def pending(self) -> int:
        """Number of buffered records awaiting delivery."""
        return len(self._buffer)

    @property
    def delivered(self) -> int:
        """Number of records the sink accepted."""
        return self._delivered

    async def _send(self, record: SessionRecord) -> None:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=self._backoff, max=self._backoff_max),
            retry=retry_if_exception_type((ArchiveDeliveryError, *_TRANSIENT_ERRORS)),
            reraise=True,
        ):
            with attempt:
                await asyncio.wait_for(self._sink.emit(record), timeout=self._timeout)
        self._delivered += 1

    def _buffer_record(self, record: SessionRecord) -> None:
        if len(self._buffer) == self._buffer.maxlen:
            dropped = self._buffer.popleft()
            logger.error(
                "Archive buffer full, dropping record for session %s", dropped.session_id
            )
        self._buffer.append(record)

    async def deliver(self, record: SessionRecord) -> bool:
        """Deliver buffered records, then this one.

        Returns:
            True if the record reached the sink, False if it was buffered.
        """
        await self.flush()
        try:
            await self._send(record)
        except Exception as e:
            logger.error(
                "Archiving session %s failed, buffering (%d pending): %s",
                record.session_id,
                len(self._buffer) + 1,
                e,
            )
            self._buffer_record(record)
            return False

        logger.info("Archived session %s", record.session_id)
        return True

    def submit(self, record: SessionRecord) -> None:
        """Schedule delivery of a record without waiting for it."""
        task = asyncio.create_task(self.deliver(record))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def flush(self) -> int:
        """Retry buffered records in order until one fails.

        Returns:
            Number of records delivered.
        """
        sent = 0
        async with self._flush_lock:
            while self._buffer:
                record = self._buffer[0]
                try:
                    await self._send(record)
                except Exception as e:
                    logger.warning(
                        "Archive flush stopped with %d pending: %s", len(self._buffer), e
                    )
                    break
                self._buffer.popleft()
                sent += 1
        return sent

    async def drain(self) -> None:
        """Wait for all scheduled deliveries to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
