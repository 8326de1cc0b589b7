# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the external collaborator gateways."""

import asyncio
import json
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

import pytest

from src.core.learner_state import (
    AdaptationLoop,
    ArchiveDeliveryError,
    CatalogLookupError,
    LearnerProfile,
    ProfileLookupError,
    ProfileSource,
    SessionRecord,
)
from src.core.learner_state.constants import DiagnosticKind
from src.domains.learner_session import ArchiveDispatcher, CatalogGateway, ProfileGateway
from src.infrastructure.external import (
    ArchivalSink,
    ContentCatalog,
    InMemoryArchiveSink,
    InMemoryProfileStore,
    JsonLinesArchiveSink,
    ProfileStore,
    StaticContentCatalog,
)


# =============================================================================
# Test doubles
# =============================================================================


class ScriptedProfileStore(ProfileStore):
    """Profile store failing with a given error a number of times."""

    def __init__(self, profile: LearnerProfile, failures: int = 0, error: Exception | None = None) -> None:
        self.profile = profile
        self.failures = failures
        self.error = error or ProfileLookupError(profile.learner_id, "store unavailable")
        self.calls = 0

    async def get_profile(self, learner_id: str) -> LearnerProfile:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return self.profile


class SlowProfileStore(ProfileStore):
    """Profile store that never answers in time."""

    async def get_profile(self, learner_id: str) -> LearnerProfile:
        await asyncio.sleep(5)
        return LearnerProfile.default(learner_id)


class SwitchableCatalog(ContentCatalog):
    """Catalog that can be taken offline."""

    def __init__(self) -> None:
        self.online = True

    async def list_applicable_methods(self, subject: str, topic: str, grade: int) -> list[str]:
        if not self.online:
            raise CatalogLookupError("catalog offline")
        return ["table_method"]


class BrokenCatalog(ContentCatalog):
    """Catalog failing with an error outside the catalog contract."""

    async def list_applicable_methods(self, subject: str, topic: str, grade: int) -> list[str]:
        raise RuntimeError("index corrupted")


class SwitchableSink(ArchivalSink):
    """Archive sink that can be taken offline."""

    def __init__(self, online: bool = True) -> None:
        self.online = online
        self.records: list[SessionRecord] = []
        self.attempts = 0

    async def emit(self, record: SessionRecord) -> None:
        self.attempts += 1
        if not self.online:
            raise ArchiveDeliveryError(record.session_id, "sink offline")
        self.records.append(record)


@pytest.fixture
def make_record(
    loop: AdaptationLoop, sample_profile: LearnerProfile
) -> Callable[[str], SessionRecord]:
    """Provide a factory of empty session records."""
    metrics = loop.initial_snapshot(sample_profile, "math")
    moment = datetime(2025, 5, 1, 9, 0, tzinfo=timezone.utc)

    def _make(session_id: str) -> SessionRecord:
        return SessionRecord(
            session_id=session_id,
            learner_id=sample_profile.learner_id,
            subject="math",
            profile_source=ProfileSource.LIVE,
            degraded=False,
            opened_at=moment,
            closed_at=moment,
            decision_count=0,
            final_metrics=metrics,
        )

    return _make


def _dispatcher(sink: ArchivalSink, **kwargs) -> ArchiveDispatcher:
    kwargs.setdefault("max_attempts", 2)
    return ArchiveDispatcher(sink, timeout_seconds=0.5, backoff_seconds=0, **kwargs)


# =============================================================================
# Profile gateway
# =============================================================================


class TestProfileGateway:
    """Tests for ProfileGateway."""

    @pytest.mark.asyncio
    async def test_retries_until_success(self, sample_profile: LearnerProfile) -> None:
        """Test transient failures are retried within the attempt budget."""
        store = ScriptedProfileStore(sample_profile, failures=2)
        gateway = ProfileGateway(store, max_attempts=3, backoff_seconds=0)

        lookup = await gateway.get_profile("learner-001")

        assert lookup.source == ProfileSource.LIVE
        assert lookup.profile == sample_profile
        assert lookup.degraded is False
        assert store.calls == 3

    @pytest.mark.asyncio
    async def test_falls_back_to_default(self, sample_profile: LearnerProfile) -> None:
        """Test an unreachable store yields the default profile."""
        store = ScriptedProfileStore(sample_profile, failures=10, error=OSError("refused"))
        gateway = ProfileGateway(store, max_attempts=3, backoff_seconds=0)

        lookup = await gateway.get_profile("learner-001")

        assert lookup.source == ProfileSource.DEFAULT
        assert lookup.profile == LearnerProfile.default("learner-001")
        assert lookup.degraded is True
        assert lookup.diagnostic is not None
        assert lookup.diagnostic.kind == DiagnosticKind.EXTERNAL_LOOKUP_DEGRADED
        assert lookup.diagnostic.source == "profile_store"
        assert store.calls == 3

    @pytest.mark.asyncio
    async def test_falls_back_to_last_known(self, sample_profile: LearnerProfile) -> None:
        """Test the last profile seen is served once the store goes down."""
        store = ScriptedProfileStore(sample_profile)
        gateway = ProfileGateway(store, max_attempts=2, backoff_seconds=0)
        await gateway.get_profile("learner-001")

        store.failures = 100
        lookup = await gateway.get_profile("learner-001")

        assert lookup.source == ProfileSource.CACHE
        assert lookup.profile == sample_profile

    @pytest.mark.asyncio
    async def test_timeout_counts_as_failure(self) -> None:
        """Test a store slower than the timeout falls back."""
        gateway = ProfileGateway(SlowProfileStore(), timeout_seconds=0.05, max_attempts=1)

        lookup = await gateway.get_profile("learner-001")

        assert lookup.source == ProfileSource.DEFAULT

    @pytest.mark.asyncio
    async def test_unexpected_error_not_retried(self, sample_profile: LearnerProfile) -> None:
        """Test errors that are not transient fall back without retrying."""
        store = ScriptedProfileStore(sample_profile, failures=10, error=ValueError("bad row"))
        gateway = ProfileGateway(store, max_attempts=3, backoff_seconds=0)

        lookup = await gateway.get_profile("learner-001")

        assert lookup.source == ProfileSource.DEFAULT
        assert store.calls == 1

    @pytest.mark.asyncio
    async def test_in_memory_store(self, sample_profile: LearnerProfile) -> None:
        """Test the in-memory store with and without auto provisioning."""
        strict = InMemoryProfileStore([sample_profile])
        lenient = InMemoryProfileStore(auto_provision=True)

        assert await strict.get_profile("learner-001") == sample_profile
        assert (await lenient.get_profile("learner-xyz")).grade_level == 6
        with pytest.raises(ProfileLookupError):
            await strict.get_profile("learner-xyz")


# =============================================================================
# Catalog gateway
# =============================================================================


class TestCatalogGateway:
    """Tests for CatalogGateway and the static catalog."""

    @pytest.mark.asyncio
    async def test_static_catalog_order(self) -> None:
        """Test topic methods come before subject-wide ones."""
        gateway = CatalogGateway(StaticContentCatalog())

        lookup = await gateway.methods_for("math", "ratio", 6)

        assert lookup.methods == (
            "line_segment_diagram",
            "unit_ratio",
            "table_method",
            "working_backwards",
        )
        assert lookup.degraded is False

    @pytest.mark.asyncio
    async def test_static_catalog_filters_grade(self) -> None:
        """Test methods not yet taught at the grade are left out."""
        methods = await StaticContentCatalog().list_applicable_methods("math", "ratio", 3)

        assert methods == ["table_method", "working_backwards"]

    @pytest.mark.asyncio
    async def test_serves_cache_when_offline(self) -> None:
        """Test the last good answer is served while the catalog is down."""
        catalog = SwitchableCatalog()
        gateway = CatalogGateway(catalog)
        await gateway.methods_for("math", "ratio", 6)

        catalog.online = False
        lookup = await gateway.methods_for("math", "ratio", 6)

        assert lookup.methods == ("table_method",)
        assert lookup.degraded is True
        assert lookup.diagnostic is not None
        assert lookup.diagnostic.source == "content_catalog"

    @pytest.mark.asyncio
    async def test_empty_without_cache(self) -> None:
        """Test a failed lookup with nothing cached yields no methods."""
        lookup = await CatalogGateway(StaticContentCatalog()).methods_for("art", "color", 6)

        assert lookup.methods == ()
        assert lookup.degraded is True

    @pytest.mark.asyncio
    async def test_unexpected_error_degrades(self) -> None:
        """Test an arbitrary catalog error degrades instead of propagating."""
        lookup = await CatalogGateway(BrokenCatalog()).methods_for("math", "ratio", 6)

        assert lookup.methods == ()
        assert lookup.degraded is True
        assert lookup.diagnostic is not None
        assert lookup.diagnostic.kind == DiagnosticKind.EXTERNAL_LOOKUP_DEGRADED
        assert "index corrupted" in lookup.diagnostic.detail


# =============================================================================
# Archive dispatcher
# =============================================================================


class TestArchiveDispatcher:
    """Tests for ArchiveDispatcher."""

    @pytest.mark.asyncio
    async def test_deliver(self, make_record) -> None:
        """Test a record reaches a healthy sink."""
        sink = InMemoryArchiveSink()
        dispatcher = _dispatcher(sink)

        assert await dispatcher.deliver(make_record("s-1")) is True
        assert [record.session_id for record in sink.records] == ["s-1"]
        assert dispatcher.delivered == 1
        assert dispatcher.pending == 0

    @pytest.mark.asyncio
    async def test_failed_delivery_is_buffered(self, make_record) -> None:
        """Test a record is kept after every attempt fails."""
        sink = SwitchableSink(online=False)
        dispatcher = _dispatcher(sink)

        assert await dispatcher.deliver(make_record("s-1")) is False
        assert sink.attempts == 2
        assert dispatcher.pending == 1

    @pytest.mark.asyncio
    async def test_buffer_sent_first_on_recovery(self, make_record) -> None:
        """Test buffered records go out in order before the next one."""
        sink = SwitchableSink(online=False)
        dispatcher = _dispatcher(sink)
        await dispatcher.deliver(make_record("s-1"))

        sink.online = True
        await dispatcher.deliver(make_record("s-2"))

        assert [record.session_id for record in sink.records] == ["s-1", "s-2"]
        assert dispatcher.pending == 0

    @pytest.mark.asyncio
    async def test_full_buffer_drops_oldest(self, make_record) -> None:
        """Test the oldest record is dropped when the buffer is full."""
        sink = SwitchableSink(online=False)
        dispatcher = _dispatcher(sink, max_attempts=1, buffer_size=2)
        for session_id in ("s-1", "s-2", "s-3"):
            await dispatcher.deliver(make_record(session_id))

        sink.online = True
        flushed = await dispatcher.flush()

        assert flushed == 2
        assert [record.session_id for record in sink.records] == ["s-2", "s-3"]

    @pytest.mark.asyncio
    async def test_submit_and_drain(self, make_record) -> None:
        """Test background deliveries finish on drain."""
        sink = InMemoryArchiveSink()
        dispatcher = _dispatcher(sink)

        dispatcher.submit(make_record("s-1"))
        dispatcher.submit(make_record("s-2"))
        await dispatcher.drain()

        assert sorted(record.session_id for record in sink.records) == ["s-1", "s-2"]


class TestJsonLinesArchiveSink:
    """Tests for JsonLinesArchiveSink."""

    @pytest.mark.asyncio
    async def test_appends_lines(self, tmp_path: Path, make_record) -> None:
        """Test each record becomes one JSON line."""
        sink = JsonLinesArchiveSink(tmp_path / "archive" / "sessions.jsonl")

        await sink.emit(make_record("s-1"))
        await sink.emit(make_record("s-2"))

        lines = sink.path.read_text(encoding="utf-8").splitlines()
        assert [json.loads(line)["session_id"] for line in lines] == ["s-1", "s-2"]

    @pytest.mark.asyncio
    async def test_write_failure_raises(self, tmp_path: Path, make_record) -> None:
        """Test an unwritable path raises ArchiveDeliveryError."""
        sink = JsonLinesArchiveSink(tmp_path)

        with pytest.raises(ArchiveDeliveryError):
            await sink.emit(make_record("s-1"))
