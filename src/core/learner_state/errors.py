# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exceptions raised by the learner-state engine.

Only caller errors are raised. Degraded external lookups and computation
anomalies are not exceptions: they are recorded as diagnostics on the
resulting decision (see models.DiagnosticEntry).
"""

from typing import Any


class LearnerStateError(Exception):
    """Base class for learner-state engine errors."""


class EventValidationError(LearnerStateError):
    """Raised when an event (or open request) fails validation.

    Rejected input never touches session state, so the caller can
    resubmit a corrected event.
    """

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        """Initialize EventValidationError.

        Args:
            message: Human readable summary.
            errors: Per-field errors as {"field", "message"} mappings.
        """
        self.errors = errors or []
        super().__init__(message)


class UnknownSubjectError(EventValidationError):
    """Raised when a subject is not one the engine is configured for."""

    def __init__(self, subject: str, known: list[str]) -> None:
        """Initialize UnknownSubjectError.

        Args:
            subject: The rejected subject.
            known: Subjects the engine accepts.
        """
        self.subject = subject
        super().__init__(
            f"Unknown subject: {subject}",
            [{"field": "subject", "message": f"must be one of {', '.join(known)}"}],
        )


class SessionNotFoundError(LearnerStateError):
    """Raised when a session id is not known to the session manager."""

    def __init__(self, session_id: str) -> None:
        """Initialize SessionNotFoundError.

        Args:
            session_id: The unknown session id.
        """
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")


class SessionClosedError(LearnerStateError):
    """Raised when a mutating call targets a closed session."""

    def __init__(self, session_id: str) -> None:
        """Initialize SessionClosedError.

        Args:
            session_id: The closed session id.
        """
        self.session_id = session_id
        super().__init__(f"Session is closed: {session_id}")


class ProfileLookupError(LearnerStateError):
    """Raised by profile stores when a profile cannot be fetched.

    The profile gateway retries on it and then falls back, so it never
    reaches callers of the session manager.
    """

    def __init__(self, learner_id: str, reason: str) -> None:
        """Initialize ProfileLookupError.

        Args:
            learner_id: Learner whose profile was requested.
            reason: Why the lookup failed.
        """
        self.learner_id = learner_id
        self.reason = reason
        super().__init__(f"Profile lookup failed for {learner_id}: {reason}")


class CatalogLookupError(LearnerStateError):
    """Raised by content catalogs when a method lookup fails."""


class ArchiveDeliveryError(LearnerStateError):
    """Raised by archival sinks when a record cannot be delivered."""

    def __init__(self, session_id: str, reason: str) -> None:
        """Initialize ArchiveDeliveryError.

        Args:
            session_id: Session whose record failed to deliver.
            reason: Why delivery failed.
        """
        self.session_id = session_id
        self.reason = reason
        super().__init__(f"Archive delivery failed for {session_id}: {reason}")
