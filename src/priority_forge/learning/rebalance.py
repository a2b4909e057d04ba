# src/priority_forge/learning/rebalance.py

from __future__ import annotations

"""
Queue rebalance observer.

Compares the ranked view before and after a graph or weight change and keeps
a record whenever tasks moved noticeably. Records are training data for
offline analysis; nothing in ranking depends on them.
"""

import logging
import uuid
from collections import deque
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import StrEnum

from ..core.ports import RebalanceSink
from ..tasks.task_models import ScoredTask

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 2
DEFAULT_MAX_EVENTS = 500
TOP_N = 3


class RebalanceTrigger(StrEnum):
    TASK_CREATED = "task_created"
    TASK_UPDATED = "task_updated"
    TASK_DELETED = "task_deleted"
    TASK_COMPLETED = "task_completed"
    WEIGHTS_CHANGED = "weights_changed"


@dataclass(slots=True, frozen=True)
class RebalanceChange:
    task_id: str
    rank_before: int
    rank_after: int
    score_before: float
    score_after: float

    @property
    def shift(self) -> int:
        """Positive = moved up the queue."""
        return self.rank_before - self.rank_after


@dataclass(slots=True, frozen=True)
class RebalanceEvent:
    id: str
    trigger: RebalanceTrigger
    trigger_task_id: str | None
    timestamp: datetime
    queue_size_before: int
    queue_size_after: int
    significant_changes: tuple[RebalanceChange, ...]
    top_before: tuple[str, ...]
    top_after: tuple[str, ...]


def _rank_map(items: Iterable[ScoredTask]) -> dict[str, tuple[int, float]]:
    open_items = [it for it in items if not it.task.is_complete]
    open_items.sort(key=lambda it: it.score)
    return {it.id: (rank, it.score) for rank, it in enumerate(open_items)}


class RebalanceObserver:
    """
    Keeps the most recent rebalance events in memory (bounded) and forwards them
    to an optional sink.
    """

    def __init__(
        self,
        threshold: int = DEFAULT_THRESHOLD,
        max_events: int = DEFAULT_MAX_EVENTS,
        sink: RebalanceSink | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if threshold < 0:
            raise ValueError("threshold must be >= 0")
        if max_events <= 0:
            raise ValueError("max_events must be > 0")
        self.threshold = threshold
        self.sink = sink
        self._events: deque[RebalanceEvent] = deque(maxlen=max_events)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def observe(
        self,
        trigger: RebalanceTrigger | str,
        before: Sequence[ScoredTask],
        after: Sequence[ScoredTask],
        trigger_task_id: str | None = None,
    ) -> RebalanceEvent | None:
        """
        Record a rebalance if any open task moved by more than `threshold` ranks.

        weights_changed is always recorded. Returns the event, or None when
        nothing was recorded.
        """
        trigger = RebalanceTrigger(trigger)
        ranks_before = _rank_map(before)
        ranks_after = _rank_map(after)

        changes: list[RebalanceChange] = []
        for task_id, (rank_b, score_b) in ranks_before.items():
            after_entry = ranks_after.get(task_id)
            if after_entry is None:
                continue
            rank_a, score_a = after_entry
            if abs(rank_b - rank_a) > self.threshold:
                changes.append(RebalanceChange(task_id, rank_b, rank_a, score_b, score_a))

        if not changes and trigger is not RebalanceTrigger.WEIGHTS_CHANGED:
            return None

        event = RebalanceEvent(
            id=uuid.uuid4().hex,
            trigger=trigger,
            trigger_task_id=trigger_task_id,
            timestamp=self._clock(),
            queue_size_before=len(ranks_before),
            queue_size_after=len(ranks_after),
            significant_changes=tuple(changes),
            top_before=tuple(list(ranks_before)[:TOP_N]),
            top_after=tuple(list(ranks_after)[:TOP_N]),
        )
        self._events.append(event)

        logger.info(
            "Rebalance %s (task=%s): %d significant changes, queue %d -> %d",
            trigger.value,
            trigger_task_id,
            len(changes),
            event.queue_size_before,
            event.queue_size_after,
        )

        if self.sink is not None:
            try:
                self.sink.record(event)
            except Exception:
                logger.exception("Rebalance sink failed for event %s", event.id)

        return event

    def events(self) -> list[RebalanceEvent]:
        return list(self._events)

    def clear(self) -> None:
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)
