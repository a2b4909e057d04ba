# src/priority_forge/ranking/scoring.py

"""
Priority scoring.

Two stateless steps:
- compute_factors(): derive the five factor signals of a task from the whole task set
- compute_score(): base score of the priority label plus a weighted adjustment

Lower score = higher priority. The base scores are 100 apart so that with
default weights a label is rarely overtaken by the one above it; nothing
enforces that, large weights can cross label boundaries.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone

from ..tasks.task_models import (
    FACTOR_WEIGHT_PAIRS,
    Effort,
    HeuristicWeights,
    Priority,
    ScoredTask,
    Task,
    TaskFactors,
)

logger = logging.getLogger(__name__)

PRIORITY_BASE_SCORES: dict[Priority, float] = {
    Priority.P0: 0.0,
    Priority.P1: 100.0,
    Priority.P2: 200.0,
    Priority.P3: 300.0,
}

# Quick wins score higher.
EFFORT_VALUES: dict[Effort, int] = {
    Effort.LOW: 3,
    Effort.MEDIUM: 2,
    Effort.HIGH: 1,
}
EFFORT_SCALE = 3

MAX_BLOCKING_COUNT = 10
MAX_DEPENDENCY_DEPTH = 5

# (upper bound in days, exclusive) -> bucket; checked in order after the overdue case.
DEADLINE_BUCKETS: tuple[tuple[float, int], ...] = (
    (1.0, 9),
    (3.0, 7),
    (7.0, 5),
    (14.0, 3),
)
OVERDUE_SENSITIVITY = 10
FAR_DEADLINE_SENSITIVITY = 1
BLOCKER_SENSITIVITY = 4

_SECONDS_PER_DAY = 86400.0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_dependent(other: Task, task_id: str) -> bool:
    return task_id in other.dependencies or other.blocking == task_id


def _dependents_index(tasks: Iterable[Task]) -> dict[str, list[Task]]:
    """Task id -> tasks that depend on it or block on it, in input order."""
    index: dict[str, list[Task]] = {}
    for t in tasks:
        targets = set(t.dependencies)
        if t.blocking:
            targets.add(t.blocking)
        targets.discard(t.id)
        for target in targets:
            index.setdefault(target, []).append(t)
    return index


def time_sensitivity(task: Task, *, now: datetime | None = None) -> int:
    if task.deadline is not None:
        now = now or _utcnow()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        # Naive datetimes are read as UTC, as Task.from_dict does.
        deadline = task.deadline
        if deadline.tzinfo is None:
            deadline = deadline.replace(tzinfo=timezone.utc)
        days = (deadline - now).total_seconds() / _SECONDS_PER_DAY
        if days < 0:
            return OVERDUE_SENSITIVITY
        for upper, bucket in DEADLINE_BUCKETS:
            if days < upper:
                return bucket
        return FAR_DEADLINE_SENSITIVITY
    if task.blocking:
        # Blockers are implicitly time-sensitive.
        return BLOCKER_SENSITIVITY
    return 0


def dependency_depth(task: Task, tasks_by_id: Mapping[str, Task], visited: set[str] | None = None) -> int:
    """
    Longest chain of dependency edges reachable from task.

    One visited set is shared by the whole traversal; a node that is reached
    again contributes 0, which bounds the recursion on cyclic graphs. Unknown
    dependency ids are skipped.
    """
    if not task.dependencies:
        return 0

    if visited is None:
        visited = set()
    if task.id in visited:
        logger.debug("Dependency cycle truncated at task %s", task.id)
        return 0
    visited.add(task.id)

    max_depth = 0
    for dep_id in task.dependencies:
        dep = tasks_by_id.get(dep_id)
        if dep is None:
            continue
        max_depth = max(max_depth, 1 + dependency_depth(dep, tasks_by_id, visited))
    return max_depth


def _factors(
    task: Task,
    tasks_by_id: Mapping[str, Task],
    dependents: list[Task],
    overrides: Mapping[str, float | None] | None,
    now: datetime | None,
) -> TaskFactors:
    projects = {task.project} | {t.project for t in dependents}
    effort = task.effort or Effort.MEDIUM

    factors = TaskFactors(
        blocking_count=float(min(len(dependents), MAX_BLOCKING_COUNT)),
        cross_project_impact=1.0 if len(projects) > 1 else 0.0,
        time_sensitivity=float(time_sensitivity(task, now=now)),
        effort_value_ratio=float(EFFORT_VALUES[effort] * EFFORT_SCALE),
        dependency_depth=float(min(dependency_depth(task, tasks_by_id), MAX_DEPENDENCY_DEPTH)),
    )

    if overrides is None:
        overrides = task.factor_overrides
    return factors.with_overrides(overrides)


def compute_factors(
    task: Task,
    all_tasks: Iterable[Task],
    overrides: Mapping[str, float | None] | None = None,
    *,
    now: datetime | None = None,
) -> TaskFactors:
    """
    Derive TaskFactors for one task from the full task set.

    overrides (or task.factor_overrides when not given) replace individual
    computed values; None entries are ignored.
    """
    tasks = list(all_tasks)
    tasks_by_id = {t.id: t for t in tasks}
    tasks_by_id.setdefault(task.id, task)

    dependents = [t for t in tasks if t.id != task.id and _is_dependent(t, task.id)]
    return _factors(task, tasks_by_id, dependents, overrides, now)


def weighted_adjustment(factors: TaskFactors, weights: HeuristicWeights) -> float:
    return -sum(getattr(weights, w) * getattr(factors, f) for f, w in FACTOR_WEIGHT_PAIRS)


def compute_score(
    factors: TaskFactors,
    priority: Priority | str,
    weights: HeuristicWeights | None = None,
) -> float:
    """Final score = base(priority) - sum(weight_i * factor_i)."""
    weights = weights or HeuristicWeights()
    base = PRIORITY_BASE_SCORES[Priority.from_raw(priority)]
    return base + weighted_adjustment(factors, weights)


@dataclass(slots=True, frozen=True)
class ScoreBreakdown:
    base: float
    contributions: dict[str, float]  # factor name -> signed contribution to the score
    total: float

    def dominant_factor(self) -> str | None:
        """Factor that lowered the score the most, or None if nothing did."""
        if not self.contributions:
            return None
        name, value = min(self.contributions.items(), key=lambda kv: kv[1])
        return name if value < 0 else None


def explain_score(
    factors: TaskFactors,
    priority: Priority | str,
    weights: HeuristicWeights | None = None,
) -> ScoreBreakdown:
    weights = weights or HeuristicWeights()
    base = PRIORITY_BASE_SCORES[Priority.from_raw(priority)]
    contributions = {f: -getattr(weights, w) * getattr(factors, f) for f, w in FACTOR_WEIGHT_PAIRS}
    return ScoreBreakdown(base=base, contributions=contributions, total=base + sum(contributions.values()))


def score_task(
    task: Task,
    all_tasks: Iterable[Task],
    weights: HeuristicWeights,
    *,
    now: datetime | None = None,
) -> ScoredTask:
    factors = compute_factors(task, all_tasks, now=now)
    return ScoredTask(id=task.id, score=compute_score(factors, task.priority, weights), task=task, factors=factors)


def score_all(
    tasks: Iterable[Task],
    weights: HeuristicWeights,
    *,
    now: datetime | None = None,
) -> list[ScoredTask]:
    """
    Rescore every task against the same snapshot (used after graph or weight changes).

    The id map and the dependents index are built once, so a full rescore is
    linear in the number of tasks and edges plus the dependency walks.
    """
    snapshot = list(tasks)
    now = now or _utcnow()
    tasks_by_id = {t.id: t for t in snapshot}
    dependents = _dependents_index(snapshot)

    scored: list[ScoredTask] = []
    for t in snapshot:
        factors = _factors(t, tasks_by_id, dependents.get(t.id, []), None, now)
        score = compute_score(factors, t.priority, weights)
        scored.append(ScoredTask(id=t.id, score=score, task=t, factors=factors))
    return scored
