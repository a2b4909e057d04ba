# src/priority_forge/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures the local (gitignored) data directory exists,
- wires EngineState, the rebalance observer and PriorityEngine together,
- reads an optional JSON seed file of tasks.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from ..config import get_settings
from ..core.state import create_initial_state
from ..learning.rebalance import RebalanceObserver
from ..ranking.engine import PriorityEngine
from ..tasks.task_models import Task

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)


def create_engine(*, settings=None) -> PriorityEngine:
    """
    Create a PriorityEngine from the provided settings.

    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    state = create_initial_state(settings)
    observer = RebalanceObserver(
        threshold=settings.rebalance_threshold,
        max_events=settings.rebalance_max_events,
    )
    return PriorityEngine(state, observer=observer, settings=settings)


def load_tasks_file(path: str | Path) -> list[Task]:
    """
    Read tasks from a JSON file.

    Accepted shapes: a list of task objects, or an object with a "tasks" list
    (the dashboard export). Entries that fail to parse are skipped with a warning.
    Raises OSError / json.JSONDecodeError when the file itself is unreadable.
    """
    path = Path(path)
    data: Any = json.loads(path.read_text("utf-8"))
    if isinstance(data, dict):
        data = data.get("tasks", [])
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of tasks")

    tasks: list[Task] = []
    for i, raw in enumerate(data):
        if not isinstance(raw, dict):
            logger.warning("Skipping task #%d in %s: not an object", i, path)
            continue
        try:
            tasks.append(Task.from_dict(raw))
        except (TypeError, ValueError) as e:
            logger.warning("Skipping task #%d in %s: %s", i, path, e)

    logger.info("Loaded %d tasks from %s", len(tasks), path)
    return tasks
