# src/priority_forge/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..learning.learner_models import LearnerState
from ..tasks.task_models import HeuristicWeights


@dataclass(slots=True)
class EngineState:
    """
    Mutable state shared by the engine and the online learner.

    `weights` is replaced (never mutated) on every change so that scored
    snapshots keep the weights they were computed with.
    """

    weights: HeuristicWeights = field(default_factory=HeuristicWeights)
    learner: LearnerState = field(default_factory=LearnerState)


def weights_from_settings(settings: Any) -> HeuristicWeights:
    defaults = HeuristicWeights()
    return HeuristicWeights(
        blocking=float(getattr(settings, "weight_blocking", defaults.blocking)),
        cross_project=float(getattr(settings, "weight_cross_project", defaults.cross_project)),
        time_sensitive=float(getattr(settings, "weight_time_sensitive", defaults.time_sensitive)),
        effort_value=float(getattr(settings, "weight_effort_value", defaults.effort_value)),
        dependency=float(getattr(settings, "weight_dependency", defaults.dependency)),
    )


def create_initial_state(settings: Any | None = None) -> EngineState:
    """Create engine state from settings (process settings when not given)."""
    if settings is None:
        from ..config import get_settings

        settings = get_settings()

    learner = LearnerState.from_settings(settings)
    weights = weights_from_settings(settings).clamped(learner.min_weight, learner.max_weight)
    return EngineState(weights=weights, learner=learner)
