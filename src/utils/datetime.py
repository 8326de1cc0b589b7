# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities for the learner-state engine.

All datetimes handled by the engine are timezone-aware UTC. Event
timestamps arriving without a timezone are interpreted as UTC.

Usage:
------
    from src.utils.datetime import utc_now, ensure_utc

    opened_at = utc_now()
    timestamp = ensure_utc(raw_timestamp)
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Ensure a datetime is timezone-aware and in UTC.

    Naive datetimes are assumed to already be UTC.

    Args:
        dt: Datetime to normalize.

    Returns:
        The same instant as a UTC-aware datetime.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def milliseconds_between(start: datetime, end: datetime) -> int:
    """Whole milliseconds from start to end (negative if end is earlier)."""
    delta = ensure_utc(end) - ensure_utc(start)
    return delta.days * 86_400_000 + delta.seconds * 1000 + delta.microseconds // 1000
