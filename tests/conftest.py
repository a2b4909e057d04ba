# tests/conftest.py

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from types import SimpleNamespace

import pytest

from priority_forge.core.state import EngineState, create_initial_state
from priority_forge.learning.rebalance import RebalanceObserver
from priority_forge.ranking.engine import PriorityEngine

from .fakes import RecordingSink

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with create_initial_state / create_engine.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the process environment.
    """
    return SimpleNamespace(
        app_name="priority-forge-test",
        log_level="INFO",
        data_dir=tmp_path / "data",
        tasks_file=None,
        # Stock weights
        weight_blocking=10.0,
        weight_cross_project=5.0,
        weight_time_sensitive=8.0,
        weight_effort_value=3.0,
        weight_dependency=2.0,
        # Learner
        learner_enabled=True,
        learning_rate=0.01,
        momentum=0.9,
        max_weight_change=0.5,
        min_weight=0.1,
        max_weight=50.0,
        feedback_max_events=500,
        # Rebalance
        rebalance_threshold=2,
        rebalance_max_events=500,
    )


@pytest.fixture()
def now() -> datetime:
    return NOW


@pytest.fixture()
def clock():
    """Frozen clock so deadline buckets do not depend on when tests run."""
    return lambda: NOW


@pytest.fixture()
def engine_state(settings: SimpleNamespace) -> EngineState:
    return create_initial_state(settings)


@pytest.fixture()
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture()
def engine(engine_state: EngineState, settings: SimpleNamespace, clock, sink: RecordingSink) -> PriorityEngine:
    """Engine with an isolated state, frozen clock and a recording rebalance sink."""
    observer = RebalanceObserver(threshold=2, max_events=500, sink=sink, clock=clock)
    return PriorityEngine(engine_state, observer=observer, clock=clock, settings=settings)
