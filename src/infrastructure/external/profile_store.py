# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Learner profile store.

The engine only reads profiles: grade level, per-subject levels and
learning preferences. Implementations must be async and raise
ProfileLookupError when a profile cannot be produced.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable

from src.core.learner_state.errors import ProfileLookupError
from src.core.learner_state.models import LearnerProfile

logger = logging.getLogger(__name__)


class ProfileStore(ABC):
    """Read interface to learner profiles."""

    @abstractmethod
    async def get_profile(self, learner_id: str) -> LearnerProfile:
        """Fetch a learner profile.

        Args:
            learner_id: Learner to look up.

        Returns:
            The learner's profile.

        Raises:
            ProfileLookupError: If the profile cannot be fetched.
        """
        ...


class InMemoryProfileStore(ProfileStore):
    """Profile store backed by a dictionary.

    With auto_provision enabled, unknown learners get a default profile
    instead of a lookup error, which suits local development.

    Example:
        store = InMemoryProfileStore([LearnerProfile(learner_id="l-1", grade_level=5)])
        profile = await store.get_profile("l-1")
    """

    def __init__(
        self,
        profiles: Iterable[LearnerProfile] = (),
        auto_provision: bool = False,
    ) -> None:
        """Initialize the store.

        Args:
            profiles: Profiles to preload.
            auto_provision: Return a default profile for unknown learners.
        """
        self._profiles: dict[str, LearnerProfile] = {
            profile.learner_id: profile for profile in profiles
        }
        self._auto_provision = auto_provision

    def put(self, profile: LearnerProfile) -> None:
        """Add or replace a profile."""
        self._profiles[profile.learner_id] = profile

    async def get_profile(self, learner_id: str) -> LearnerProfile:
        profile = self._profiles.get(learner_id)
        if profile is not None:
            return profile
        if self._auto_provision:
            logger.debug("Provisioning default profile for %s", learner_id)
            return LearnerProfile.default(learner_id)
        raise ProfileLookupError(learner_id, "unknown learner")

    def __len__(self) -> int:
        return len(self._profiles)
