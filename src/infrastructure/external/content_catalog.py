# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Content catalog of solution methods.

The adaptation loop asks the catalog which solution methods apply to the
next problem so the content generator can be steered toward them. A
catalog failure never blocks a decision; the gateway serves the last
cached list instead.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field

from src.core.learner_state.errors import CatalogLookupError

# Topic key used when no topic-specific entry exists
ANY_TOPIC = "*"


class MethodEntry(BaseModel):
    """A solution method and the grades it is taught in."""

    model_config = ConfigDict(frozen=True)

    method_id: str
    min_grade: int = Field(default=1, ge=1, le=12)
    max_grade: int = Field(default=12, ge=1, le=12)

    def applies_to(self, grade: int) -> bool:
        """Check if the method is taught at the given grade."""
        return self.min_grade <= grade <= self.max_grade


DEFAULT_METHODS: dict[str, dict[str, list[MethodEntry]]] = {
    "math": {
        ANY_TOPIC: [
            MethodEntry(method_id="table_method"),
            MethodEntry(method_id="working_backwards", min_grade=3),
        ],
        "ratio": [
            MethodEntry(method_id="line_segment_diagram", min_grade=4),
            MethodEntry(method_id="unit_ratio", min_grade=5),
        ],
        "speed": [
            MethodEntry(method_id="diagram_of_motion", min_grade=5),
            MethodEntry(method_id="line_segment_diagram", min_grade=4),
        ],
        "crane_turtle": [
            MethodEntry(method_id="area_diagram", min_grade=4),
            MethodEntry(method_id="assume_all_one_kind", min_grade=4),
        ],
        "geometry": [
            MethodEntry(method_id="auxiliary_line", min_grade=5),
            MethodEntry(method_id="equal_area_transform", min_grade=5),
        ],
    },
    "japanese": {
        ANY_TOPIC: [MethodEntry(method_id="keyword_marking")],
        "reading": [
            MethodEntry(method_id="paragraph_summary", min_grade=3),
            MethodEntry(method_id="contrast_structure", min_grade=5),
        ],
    },
    "science": {
        ANY_TOPIC: [
            MethodEntry(method_id="hypothesis_check", min_grade=3),
            MethodEntry(method_id="variable_control", min_grade=5),
        ],
    },
    "social_studies": {
        ANY_TOPIC: [
            MethodEntry(method_id="timeline"),
            MethodEntry(method_id="cause_effect_chain", min_grade=4),
        ],
    },
    "english": {
        ANY_TOPIC: [MethodEntry(method_id="chunk_reading", min_grade=5)],
    },
}


class ContentCatalog(ABC):
    """Read interface to the solution-method catalog."""

    @abstractmethod
    async def list_applicable_methods(self, subject: str, topic: str, grade: int) -> list[str]:
        """List method ids applicable to a problem.

        Args:
            subject: Problem subject.
            topic: Problem topic.
            grade: Learner grade level.

        Returns:
            Method ids, topic-specific ones first.

        Raises:
            CatalogLookupError: If the catalog cannot be read.
        """
        ...


class StaticContentCatalog(ContentCatalog):
    """Catalog served from an in-memory table.

    Topic-specific methods come first, followed by the subject-wide
    methods under the "*" topic. Duplicates are dropped.
    """

    def __init__(
        self, methods: Mapping[str, Mapping[str, list[MethodEntry]]] | None = None
    ) -> None:
        """Initialize the catalog.

        Args:
            methods: subject -> topic -> method entries. Defaults to
                DEFAULT_METHODS.
        """
        self._methods = DEFAULT_METHODS if methods is None else methods

    async def list_applicable_methods(self, subject: str, topic: str, grade: int) -> list[str]:
        topics = self._methods.get(subject)
        if topics is None:
            raise CatalogLookupError(f"No methods catalogued for subject {subject}")

        result: list[str] = []
        for entry in [*topics.get(topic, []), *topics.get(ANY_TOPIC, [])]:
            if entry.applies_to(grade) and entry.method_id not in result:
                result.append(entry.method_id)
        return result
