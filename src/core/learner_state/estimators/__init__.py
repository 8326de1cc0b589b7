# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Learner-state estimators.

Each estimator is stateless and shared across sessions:
- CognitiveLoadEstimator: 0-100 load score with overload flags
- ComprehensionClassifier: surface/strategic/deep running percentages
- MetacognitionAssessor: six competency sub-scores and stage
- MotivationEstimator: intrinsic/extrinsic, confidence, anxiety, flow
- AdaptiveDifficultyController: ZPD, target difficulty, scaffolding
"""

from src.core.learner_state.estimators.base import BaseEstimator
from src.core.learner_state.estimators.cognitive_load import CognitiveLoadEstimator
from src.core.learner_state.estimators.comprehension import ComprehensionClassifier
from src.core.learner_state.estimators.difficulty import (
    AdaptiveDifficultyController,
    ComplexityPlan,
    ZoneEstimate,
)
from src.core.learner_state.estimators.metacognition import (
    MetacognitionAssessor,
    MetacognitiveEntry,
)
from src.core.learner_state.estimators.motivation import BehaviorCounters, MotivationEstimator

__all__ = [
    "BaseEstimator",
    "CognitiveLoadEstimator",
    "ComprehensionClassifier",
    "MetacognitionAssessor",
    "MetacognitiveEntry",
    "MotivationEstimator",
    "BehaviorCounters",
    "AdaptiveDifficultyController",
    "ComplexityPlan",
    "ZoneEstimate",
]
