# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Base estimator class.

Estimators are stateless: they hold only their policy section and can be
shared across every session in the process. All per-session data comes
in through the EstimationContext.
"""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel

from src.core.learner_state.state import EstimationContext


class BaseEstimator(ABC):
    """Abstract base class for all learner-state estimators.

    Subclasses declare `policy_class` and implement `estimate`, which
    reads an EstimationContext and returns the estimator's value model.
    """

    policy_class: type[BaseModel]

    def __init__(self, policy: BaseModel | None = None) -> None:
        """Initialize the estimator with an optional policy section.

        Args:
            policy: Policy section for this estimator, defaults when None.
        """
        self._policy = policy if policy is not None else self.policy_class()

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the estimator name used in diagnostics."""
        ...

    @property
    def policy(self) -> Any:
        """Get the policy section this estimator runs with."""
        return self._policy

    @abstractmethod
    def estimate(self, context: EstimationContext) -> Any:
        """Estimate this dimension of the learner state.

        Args:
            context: Session view with the incoming event appended.

        Returns:
            Estimator-specific value model.
        """
        ...
