# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tuning policy for the learner-state engine.

Every heuristic constant the estimators use (weights, thresholds, window
sizes, keyword lists) lives in the EnginePolicy table below. Defaults are
the production values; a YAML file can override any subset of them.

Example:
    >>> from pathlib import Path
    >>> from src.core.learner_state.policy import load_policy
    >>> policy = load_policy(Path("config/engine/policy.yaml"))
    >>> policy.difficulty.window_size
    5

YAML layout mirrors the model tree::

    cognitive_load:
      overload_threshold: 85
    difficulty:
      window_size: 7
"""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


class PolicyLoadError(Exception):
    """Raised when a policy file cannot be read, parsed or validated."""

    def __init__(self, path: Path, reason: str) -> None:
        """Initialize PolicyLoadError.

        Args:
            path: Path to the policy file.
            reason: Why loading failed.
        """
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load engine policy '{path}': {reason}")


class _PolicySection(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class CognitiveLoadPolicy(_PolicySection):
    """Weights and thresholds of the cognitive load formula."""

    scale: int = 50
    accuracy_window: int = Field(default=5, ge=1)
    reference_response_ms: int = Field(default=30_000, gt=0)
    accuracy_weight: float = 1.5
    hesitation_weight: float = 0.1
    error_weight: float = 0.15
    fatigue_reference_ms: int = Field(default=3_600_000, gt=0)
    fatigue_cap: float = 0.3
    optimal_range: tuple[int, int] = (30, 70)
    overload_threshold: int = 80
    accuracy_collapse_threshold: float = 0.5
    hesitation_threshold: int = 3
    fatigue_window_ms: int = 2_700_000


class ComprehensionPolicy(_PolicySection):
    """Bucketing rules for the comprehension depth classifier."""

    bucket_increment: int = 25
    surface_max_length: int = 50
    deep_min_length: int = 100
    rote_methods: list[str] = Field(
        default_factory=lambda: ["rote", "memorization", "recall", "暗記"]
    )
    method_selection_terms: list[str] = Field(
        default_factory=lambda: [
            "choose",
            "chose",
            "decided to use",
            "approach",
            "method",
            "strategy",
            "方法",
            "解き方",
            "を使",
        ]
    )
    causal_terms: list[str] = Field(
        default_factory=lambda: ["because", "since", "therefore", "so that", "なぜなら", "ので", "だから"]
    )
    equivalence_terms: list[str] = Field(
        default_factory=lambda: [
            "this is",
            "same as",
            "similar to",
            "equivalent",
            "just like",
            "同じ",
            "と同様",
            "に似て",
        ]
    )
    transfer_deep_weight: float = 0.6
    transfer_strategic_weight: float = 0.3
    transfer_connection_weight: float = 10.0
    transfer_scale: float = 0.7


class MetacognitionPolicy(_PolicySection):
    """Keyword lists and thresholds of the metacognition assessor."""

    planning_terms: list[str] = Field(
        default_factory=lambda: ["first", "next", "then", "step", "plan", "finally", "まず", "次に", "手順", "最後に"]
    )
    monitoring_terms: list[str] = Field(
        default_factory=lambda: ["check", "verify", "review", "confirm", "確認", "見直", "検算"]
    )
    strategy_patterns: dict[str, list[str]] = Field(
        default_factory=lambda: {
            "visualization": ["diagram", "picture", "draw", "図", "絵"],
            "structuring": ["table", "organize", "organise", "表", "整理"],
            "formulation": ["equation", "formula", "calculate", "式", "計算"],
            "analogy": ["similar", "before", "似て", "前に"],
        }
    )
    strategy_points: int = 20
    awareness_divisor: float = Field(default=2.0, gt=0)
    regulation_min_entries: int = 3
    expert_threshold: float = 80.0
    proficient_threshold: float = 60.0
    developing_threshold: float = 40.0
    strength_threshold: int = 60
    weakness_threshold: int = 40


class MotivationPolicy(_PolicySection):
    """Counter weights of the motivational state estimator."""

    easy_max_difficulty: int = 3
    medium_max_difficulty: int = 6
    initiation_weight: float = 10.0
    extension_weight: float = 15.0
    intrinsic_hard_bonus: float = 20.0
    intrinsic_medium_bonus: float = 10.0
    persistence_weight: float = 2.0
    persistence_cap: float = 40.0
    intrinsic_scale: float = 0.5
    extrinsic_base: float = 100.0
    help_penalty: float = 10.0
    positive_weight: float = 15.0
    negative_weight: float = 10.0
    confidence_hard_bonus: float = 30.0
    confidence_scale: float = 0.7
    anxiety_negative_weight: float = 12.0
    anxiety_help_weight: float = 8.0
    anxiety_easy_bonus: float = 20.0
    anxiety_scale: float = 0.6
    flow_extension_weight: float = 20.0
    flow_persistence_weight: float = 3.0
    flow_medium_bonus: float = 25.0
    flow_scale: float = 0.5


class DifficultyPolicy(_PolicySection):
    """ZPD, adjustment-rate and complexity optimiser parameters."""

    window_size: int = Field(default=5, ge=1)
    zpd_below: int = 1
    zpd_above: int = 2
    improvement_threshold: float = 0.1
    target_step: float = 0.5
    base_adjustment_rate: float = 0.1
    max_adjustment_rate: float = 0.3
    speed_bonus_weight: float = 0.05
    consistency_bonus_weight: float = 0.05
    reference_response_ms: int = Field(default=30_000, gt=0)
    high_load: int = 80
    low_load: int = 40
    overload_complexity_delta: int = -2
    underload_complexity_delta: int = 1
    break_minutes: dict[str, int] = Field(
        default_factory=lambda: {"short": 15, "medium": 25, "long": 45}
    )
    break_high_load: int = 70
    break_low_load: int = 40
    high_load_breaks: list[int] = Field(default_factory=lambda: [10, 20, 35])
    balanced_breaks: list[int] = Field(default_factory=lambda: [15, 30])
    frustration_risk_above: float = 8.0
    boredom_risk_below: float = 3.0


class AdaptationPolicy(_PolicySection):
    """Trigger conditions of the real-time adaptation loop."""

    performance_window: int = Field(default=5, ge=1)
    fatigue_minutes: int = 45
    fatigue_accuracy: float = 0.6
    frustration_threshold: int = 3
    frustration_window: int = Field(default=5, ge=1)
    engagement_threshold: float = 40.0
    engagement_window: int = Field(default=5, ge=1)
    engagement_reference_ms: int = Field(default=120_000, gt=0)
    engagement_reference_length: int = Field(default=100, gt=0)
    engagement_pace_weight: float = 0.5
    engagement_effort_weight: float = 0.3
    engagement_confidence_weight: float = 0.2
    mastery_accuracy: float = 0.9
    mastery_response_ms: int = 30_000
    encourage_support_level: int = 4
    max_support_level: int = 5
    chunking_load: int = 70
    concept_map_deep: int = 50
    reflection_evaluation: int = 60


class ProjectionPolicy(_PolicySection):
    """Parameters of the predictive projector."""

    horizon: int = Field(default=10, ge=0)
    efficiency_weight: float = 20.0
    metacognition_weight: float = 0.3
    band_below: int = 15
    band_above: int = 10
    base_minutes_per_topic: float = 120.0
    min_acceleration: float = Field(default=0.25, gt=0)
    max_acceleration: float = 3.0
    topic_mastery_accuracy: float = 0.9
    default_retention: float = 0.8
    retention_window: int = Field(default=5, ge=1)
    fast_speed_multiplier: float = 1.2
    slow_speed_multiplier: float = 0.8
    strong_strategic: int = 70
    strong_acquisition: float = 1.5
    strong_evaluation: int = 70
    risk_deep: int = 40
    risk_retention: float = 0.6
    risk_anxiety: int = 60
    bottleneck_deep: int = 50
    bottleneck_regulation: int = 50
    improvement_retention: float = 0.7
    improvement_flow: int = 50
    max_potential: int = 95


class EnginePolicy(_PolicySection):
    """Complete tuning table of the engine."""

    cognitive_load: CognitiveLoadPolicy = Field(default_factory=CognitiveLoadPolicy)
    comprehension: ComprehensionPolicy = Field(default_factory=ComprehensionPolicy)
    metacognition: MetacognitionPolicy = Field(default_factory=MetacognitionPolicy)
    motivation: MotivationPolicy = Field(default_factory=MotivationPolicy)
    difficulty: DifficultyPolicy = Field(default_factory=DifficultyPolicy)
    adaptation: AdaptationPolicy = Field(default_factory=AdaptationPolicy)
    projection: ProjectionPolicy = Field(default_factory=ProjectionPolicy)


def merge_overrides(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base without mutating either.

    Nested mappings are merged key by key. Any other value in override
    replaces the base value, lists included.

    Args:
        base: Mapping holding the defaults.
        override: Mapping whose values take precedence.

    Returns:
        A new merged mapping.
    """
    merged: dict[str, Any] = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = merge_overrides(current, value)
        else:
            merged[key] = value
    return merged


def _read_policy_mapping(path: Path) -> dict[str, Any]:
    if not path.is_file():
        raise PolicyLoadError(path, "Path is not a file")

    try:
        parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise PolicyLoadError(path, f"Cannot read file: {e}") from e
    except yaml.YAMLError as e:
        raise PolicyLoadError(path, f"Invalid YAML syntax: {e}") from e

    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise PolicyLoadError(
            path, f"YAML root must be a mapping, got {type(parsed).__name__}"
        )
    return parsed


def load_policy(path: Path | None = None) -> EnginePolicy:
    """Load the engine policy, overlaying a YAML file on the defaults.

    A missing path yields the default policy. A file that exists but is
    malformed, or names unknown keys, is an error.

    Args:
        path: Optional path to a YAML policy file.

    Returns:
        Validated EnginePolicy.

    Raises:
        PolicyLoadError: If the file cannot be parsed or validated.
    """
    if path is None:
        return EnginePolicy()

    if not path.exists():
        logger.warning("Policy file %s not found, using default policy", path)
        return EnginePolicy()

    overrides = _read_policy_mapping(path)
    merged = merge_overrides(EnginePolicy().model_dump(), overrides)

    try:
        policy = EnginePolicy.model_validate(merged)
    except ValidationError as e:
        raise PolicyLoadError(path, f"Invalid policy values: {e}") from e

    logger.info("Loaded engine policy from %s (%d overridden sections)", path, len(overrides))
    return policy
