# src/priority_forge/ranking/engine.py

from __future__ import annotations

"""
PriorityEngine: the host-facing facade.

The host owns tasks and tells the engine about changes (created / updated /
deleted / completed). The engine keeps a snapshot of all known tasks, a heap of
the open ones, the online learner and the rebalance observer.

Update policy:
- a change that touches the dependency graph (dependencies, blocking, status
  into/out of complete) rescores every task and rebuilds the heap in O(n);
- any other change is a single O(log n) push / update / remove.

Every public method runs under one re-entrant lock, so the engine can be shared
between a console thread and a background host.
"""

import logging
import threading
from collections.abc import Iterable, Sequence
from dataclasses import replace
from datetime import datetime, timezone

from ..core.ports import Clock
from ..core.state import EngineState, create_initial_state
from ..errors import DuplicateItemError, TaskNotFoundError
from ..learning.learner_models import (
    LearnerMetrics,
    LearnerState,
    ReorderEvent,
    ReorderResult,
    SelectionEvent,
)
from ..learning.online_learner import DEFAULT_HISTORY_SIZE, OnlineLearner
from ..learning.rebalance import (
    DEFAULT_MAX_EVENTS,
    DEFAULT_THRESHOLD,
    RebalanceEvent,
    RebalanceObserver,
    RebalanceTrigger,
)
from ..tasks.task_models import HeuristicWeights, ScoredTask, Task, TaskStatus
from .heap import IndexedMinHeap
from .scoring import ScoreBreakdown, explain_score, score_all, score_task

logger = logging.getLogger(__name__)


class PriorityEngine:
    def __init__(
        self,
        state: EngineState | None = None,
        *,
        observer: RebalanceObserver | None = None,
        clock: Clock | None = None,
        settings: object | None = None,
    ) -> None:
        self._state = state if state is not None else create_initial_state(settings)
        self._clock: Clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = threading.RLock()

        self._tasks: dict[str, Task] = {}
        self._heap: IndexedMinHeap[ScoredTask] = IndexedMinHeap()
        self._learner = OnlineLearner(
            self._state,
            clock=self._clock,
            max_events=int(getattr(settings, "feedback_max_events", DEFAULT_HISTORY_SIZE)),
        )
        # An empty observer is falsy (it defines __len__), so test for None.
        if observer is None:
            observer = RebalanceObserver(
                threshold=int(getattr(settings, "rebalance_threshold", DEFAULT_THRESHOLD)),
                max_events=int(getattr(settings, "rebalance_max_events", DEFAULT_MAX_EVENTS)),
                clock=self._clock,
            )
        self._observer = observer

    # ---- internals (callers hold the lock) ----

    def _score(self, task: Task) -> ScoredTask:
        return score_task(task, self._tasks.values(), self._state.weights, now=self._clock())

    def _has_dependents(self, task_id: str) -> bool:
        return any(
            t.id != task_id and (task_id in t.dependencies or t.blocking == task_id)
            for t in self._tasks.values()
        )

    @staticmethod
    def _has_edges(task: Task) -> bool:
        return bool(task.dependencies) or bool(task.blocking)

    def _rescore_all(
        self,
        trigger: RebalanceTrigger | None = None,
        trigger_task_id: str | None = None,
    ) -> None:
        before = self._heap.to_array()
        scored = score_all(self._tasks.values(), self._state.weights, now=self._clock())
        open_items = [s for s in scored if not s.task.is_complete]
        self._heap.rebuild(open_items)
        logger.debug("Full rescore: %d tasks, %d open", len(scored), len(open_items))
        if trigger is not None:
            self._observer.observe(trigger, before, open_items, trigger_task_id)

    def _resolve_view(self, ranked_view: Sequence[str] | None) -> list[ScoredTask]:
        if ranked_view is None:
            return self._heap.to_sorted_array()
        view: list[ScoredTask] = []
        for task_id in ranked_view:
            item = self._heap.get(task_id)
            if item is None:
                raise TaskNotFoundError(task_id)
            view.append(item)
        return view

    # ---- task lifecycle ----

    def load(self, tasks: Iterable[Task]) -> int:
        """Replace the whole snapshot. Returns the number of open (ranked) tasks."""
        with self._lock:
            snapshot: dict[str, Task] = {}
            for task in tasks:
                if task.id in snapshot:
                    raise DuplicateItemError(task.id)
                snapshot[task.id] = task
            self._tasks = snapshot
            self._rescore_all()
            logger.info("Loaded %d tasks (%d open)", len(snapshot), len(self._heap))
            return len(self._heap)

    def task_created(self, task: Task) -> ScoredTask | None:
        """Add a task. Returns its scored entry, or None when it is already complete."""
        with self._lock:
            if task.id in self._tasks:
                raise DuplicateItemError(task.id)
            self._tasks[task.id] = task

            if self._has_edges(task) or self._has_dependents(task.id):
                self._rescore_all(RebalanceTrigger.TASK_CREATED, task.id)
            elif not task.is_complete:
                self._heap.push(self._score(task))
            return self._heap.get(task.id)

    def task_updated(self, task: Task) -> ScoredTask | None:
        with self._lock:
            old = self._tasks.get(task.id)
            if old is None:
                raise TaskNotFoundError(task.id, "task snapshot")
            self._tasks[task.id] = task

            graph_changed = (
                old.dependencies != task.dependencies
                or old.blocking != task.blocking
                or old.is_complete != task.is_complete
                or (old.project != task.project and self._has_edges(task))
            )
            if graph_changed:
                self._rescore_all(RebalanceTrigger.TASK_UPDATED, task.id)
            elif not task.is_complete:
                self._heap.update(task.id, self._score(task))
            return self._heap.get(task.id)

    def task_deleted(self, task_id: str) -> bool:
        """Forget a task. Returns False if it was not known."""
        with self._lock:
            task = self._tasks.pop(task_id, None)
            if task is None:
                return False

            if self._has_edges(task) or self._has_dependents(task_id):
                self._rescore_all(RebalanceTrigger.TASK_DELETED, task_id)
            else:
                self._heap.remove(task_id)
            return True

    def task_completed(self, task_id: str) -> Task:
        """Mark a task complete and drop it from the ranked view; it stays in the snapshot."""
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                raise TaskNotFoundError(task_id, "task snapshot")
            if task.is_complete:
                return task

            done = replace(task, status=TaskStatus.COMPLETE)
            self._tasks[task_id] = done
            self._rescore_all(RebalanceTrigger.TASK_COMPLETED, task_id)
            logger.info("Task %s completed; %d open tasks remain", task_id, len(self._heap))
            return done

    # ---- weights ----

    @property
    def weights(self) -> HeuristicWeights:
        with self._lock:
            return self._state.weights

    def set_weights(self, **changes: float) -> HeuristicWeights:
        """Explicit weight edit; values are clamped to the learner bounds."""
        with self._lock:
            weights = self._learner.set_weights(**changes)
            self._rescore_all(RebalanceTrigger.WEIGHTS_CHANGED)
            return weights

    def recalculate(self) -> None:
        """Rescore everything with the current weights (e.g. after the clock moved on)."""
        with self._lock:
            self._rescore_all(RebalanceTrigger.WEIGHTS_CHANGED)

    # ---- queries ----

    def ranked(self) -> list[ScoredTask]:
        with self._lock:
            return self._heap.to_sorted_array()

    def ranked_ids(self) -> list[str]:
        with self._lock:
            return self._heap.ids()

    def top(self) -> ScoredTask | None:
        with self._lock:
            return self._heap.peek()

    def pop_top(self) -> ScoredTask | None:
        """Take the highest-priority task out of the queue and the snapshot."""
        with self._lock:
            item = self._heap.pop()
            if item is None:
                return None
            self._tasks.pop(item.id, None)
            if self._has_edges(item.task) or self._has_dependents(item.id):
                self._rescore_all()
            return item

    def get(self, task_id: str) -> ScoredTask | None:
        with self._lock:
            return self._heap.get(task_id)

    def task(self, task_id: str) -> Task | None:
        """Snapshot lookup, including completed tasks."""
        with self._lock:
            return self._tasks.get(task_id)

    def rank_of(self, task_id: str) -> int | None:
        with self._lock:
            if task_id not in self._heap:
                return None
            return self._heap.ids().index(task_id)

    def explain(self, task_id: str) -> ScoreBreakdown:
        with self._lock:
            item = self._heap.get(task_id)
            if item is None:
                raise TaskNotFoundError(task_id)
            return explain_score(item.factors, item.task.priority, self._state.weights)

    def __len__(self) -> int:
        with self._lock:
            return len(self._heap)

    def __contains__(self, task_id: object) -> bool:
        with self._lock:
            return task_id in self._heap

    # ---- learning ----

    def log_reorder(
        self,
        task_id: str,
        from_rank: int,
        to_rank: int,
        ranked_view: Sequence[str] | None = None,
    ) -> ReorderResult:
        """
        Feed a drag-reorder back into the learner.

        ranked_view is the id order the user saw (defaults to the current ranking).
        When the learner moves the weights, every task is rescored.
        """
        with self._lock:
            view = self._resolve_view(ranked_view)
            result = self._learner.log_reorder(task_id, from_rank, to_rank, view)
            if result.weight_update_applied:
                self._rescore_all(RebalanceTrigger.WEIGHTS_CHANGED, task_id)
            return result

    def log_selection(self, task_id: str, ranked_view: Sequence[str] | None = None) -> SelectionEvent:
        with self._lock:
            return self._learner.log_selection(task_id, self._resolve_view(ranked_view))

    def learner_state(self) -> LearnerState:
        with self._lock:
            return self._learner.get_state()

    def update_learner_config(self, **changes: object) -> LearnerState:
        with self._lock:
            before = self._state.weights
            state = self._learner.update_config(**changes)
            if self._state.weights != before:
                self._rescore_all(RebalanceTrigger.WEIGHTS_CHANGED)
            return state

    def learner_metrics(self) -> LearnerMetrics:
        with self._lock:
            return self._learner.metrics()

    def reorder_events(self, limit: int | None = None) -> list[ReorderEvent]:
        """Recent drag-reorders, oldest first; limit keeps only the newest ones."""
        with self._lock:
            return self._learner.reorder_events(limit)

    def selection_events(self, limit: int | None = None) -> list[SelectionEvent]:
        with self._lock:
            return self._learner.selection_events(limit)

    def rebalance_events(self) -> list[RebalanceEvent]:
        with self._lock:
            return self._observer.events()
