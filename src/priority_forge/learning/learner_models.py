# src/priority_forge/learning/learner_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from ..tasks.task_models import Effort, HeuristicWeights, Priority, TaskFactors

DEFAULT_LEARNING_RATE = 0.01
DEFAULT_MOMENTUM = 0.9
DEFAULT_MAX_WEIGHT_CHANGE = 0.5
DEFAULT_MIN_WEIGHT = 0.1
DEFAULT_MAX_WEIGHT = 50.0


@dataclass(slots=True)
class LearnerState:
    """
    Online learner configuration, momentum buffer and running metrics.

    Lifecycle:
    - created with defaults (or from settings),
    - mutated only by OnlineLearner (update step / update_config),
    - the momentum buffer lives as long as this object; it is never reset.
    """

    enabled: bool = True
    learning_rate: float = DEFAULT_LEARNING_RATE
    momentum: float = DEFAULT_MOMENTUM

    momentum_buffer: HeuristicWeights = field(default_factory=HeuristicWeights.zeros)

    # Safeguards
    max_weight_change: float = DEFAULT_MAX_WEIGHT_CHANGE
    min_weight: float = DEFAULT_MIN_WEIGHT
    max_weight: float = DEFAULT_MAX_WEIGHT

    # Training metrics
    cumulative_loss: float = 0.0
    correct_predictions: int = 0
    total_pairs: int = 0
    total_updates: int = 0
    last_update_at: datetime | None = None

    @classmethod
    def from_settings(cls, settings: Any) -> LearnerState:
        return cls(
            enabled=bool(getattr(settings, "learner_enabled", True)),
            learning_rate=float(getattr(settings, "learning_rate", DEFAULT_LEARNING_RATE)),
            momentum=float(getattr(settings, "momentum", DEFAULT_MOMENTUM)),
            max_weight_change=float(getattr(settings, "max_weight_change", DEFAULT_MAX_WEIGHT_CHANGE)),
            min_weight=float(getattr(settings, "min_weight", DEFAULT_MIN_WEIGHT)),
            max_weight=float(getattr(settings, "max_weight", DEFAULT_MAX_WEIGHT)),
        )


@dataclass(slots=True, frozen=True)
class PairwisePreference:
    """
    "preferred should rank above demoted", inferred from a reorder.

    score_diff = score(preferred) - score(demoted) at observation time;
    negative means the current scoring already agreed.
    """

    preferred_id: str
    demoted_id: str
    score_diff: float


class ReorderDirection(StrEnum):
    PROMOTED = "promoted"
    DEMOTED = "demoted"


@dataclass(slots=True, frozen=True)
class TaskFeatureSnapshot:
    """Features of a task at the time of a feedback event (for offline retraining)."""

    priority: Priority
    score: float
    factors: TaskFactors
    effort: Effort | None
    has_deadline: bool
    has_blocking: bool
    has_dependencies: bool


@dataclass(slots=True, frozen=True)
class ReorderEvent:
    task_id: str
    from_rank: int
    to_rank: int
    direction: ReorderDirection
    timestamp: datetime
    preferences: tuple[PairwisePreference, ...]
    passed_ids: tuple[str, ...]
    dragged_features: TaskFeatureSnapshot
    queue_size: int


@dataclass(slots=True, frozen=True)
class ReorderResult:
    event: ReorderEvent
    pairs_generated: int
    weight_update_applied: bool
    applied_delta: HeuristicWeights | None
    new_weights: HeuristicWeights


@dataclass(slots=True, frozen=True)
class SelectionEvent:
    """
    A user picked a task to work on from the ranked view.

    Every task ranked above the selected one was skipped; each yields a
    "selected over skipped" preference. Informational only.
    """

    selected_id: str
    selected_rank: int
    selected_score: float
    top_id: str
    top_score: float
    queue_size: int
    was_top_selected: bool
    timestamp: datetime
    skipped_ids: tuple[str, ...]
    preferences: tuple[PairwisePreference, ...]
    selected_features: TaskFeatureSnapshot


@dataclass(slots=True, frozen=True)
class LearnerMetrics:
    total_updates: int
    total_pairs: int
    correct_predictions: int
    accuracy: float  # percent, 2 decimals
    cumulative_loss: float
    current_weights: HeuristicWeights
    learning_rate: float
    enabled: bool
