# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Event validator.

Normalizes and validates raw learning events before they reach any
session state. Field-level rules (ranges, types, required fields) come
from the LearningEvent model. The validator adds the rules that need
session context: known subject, matching session id, and timestamps
that never move backwards.
"""

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from src.core.learner_state.errors import EventValidationError, UnknownSubjectError
from src.core.learner_state.models import LearningEvent

logger = logging.getLogger(__name__)


class EventValidator:
    """Validates learning events against the engine's configured subjects."""

    def __init__(self, subjects: Iterable[str]) -> None:
        """Initialize the validator.

        Args:
            subjects: Subjects the engine accepts (case-insensitive).
        """
        self._subjects = sorted({subject.strip().lower() for subject in subjects})

    @property
    def subjects(self) -> list[str]:
        """Get the accepted subjects."""
        return list(self._subjects)

    def validate_subject(self, subject: str) -> str:
        """Normalize a subject and check it is known.

        Raises:
            UnknownSubjectError: If the subject is not configured.
        """
        normalized = subject.strip().lower()
        if normalized not in self._subjects:
            raise UnknownSubjectError(subject, self._subjects)
        return normalized

    def validate(
        self,
        raw: LearningEvent | Mapping[str, Any],
        *,
        session_id: str,
        previous_timestamp: datetime | None = None,
    ) -> LearningEvent:
        """Validate and normalize one event.

        Args:
            raw: Event model or mapping as received from the caller.
            session_id: Session the event is being submitted to. Filled in
                when the event omits it.
            previous_timestamp: Timestamp of the session's latest event.

        Returns:
            The accepted, normalized LearningEvent.

        Raises:
            EventValidationError: If any rule fails.
        """
        data = raw.model_dump() if isinstance(raw, LearningEvent) else dict(raw)

        submitted_session = data.get("session_id")
        if submitted_session in (None, ""):
            data["session_id"] = session_id
        elif submitted_session != session_id:
            raise EventValidationError(
                "Event belongs to a different session",
                [{"field": "session_id", "message": f"expected {session_id}"}],
            )

        try:
            event = LearningEvent.model_validate(data)
        except ValidationError as e:
            errors = [
                {
                    "field": ".".join(str(part) for part in error["loc"]) or "event",
                    "message": error["msg"],
                }
                for error in e.errors()
            ]
            logger.debug("Rejected event for session %s: %s", session_id, errors)
            raise EventValidationError("Invalid learning event", errors) from e

        self.validate_subject(event.subject)

        if previous_timestamp is not None and event.timestamp < previous_timestamp:
            raise EventValidationError(
                "Event timestamp precedes the previous event",
                [{"field": "timestamp", "message": "must not be earlier than the previous event"}],
            )

        return event
