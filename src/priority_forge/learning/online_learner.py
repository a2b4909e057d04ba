# src/priority_forge/learning/online_learner.py

from __future__ import annotations

"""
Online learner.

Turns a drag-reorder of the ranked view into pairwise preferences and nudges
the heuristic weights with one SGD-with-momentum step on a pairwise hinge loss:

    loss(pair) = max(0, margin + score(preferred) - score(demoted))

Lowering a score raises priority, so the gradient for weight i is
factor_i(preferred) - factor_i(demoted): increasing that weight pulls the
preferred task down relative to the demoted one.

The learner does not touch the heap. It reports whether the weights changed and
the caller (PriorityEngine) rescores and rebuilds.
"""

import logging
from collections import deque
from collections.abc import Sequence
from dataclasses import fields, replace
from datetime import datetime, timezone

from ..core.ports import Clock
from ..core.state import EngineState
from ..errors import InvalidRankError, TaskNotFoundError
from ..tasks.task_models import FACTOR_WEIGHT_PAIRS, HeuristicWeights, ScoredTask
from .learner_models import (
    LearnerMetrics,
    LearnerState,
    PairwisePreference,
    ReorderDirection,
    ReorderEvent,
    ReorderResult,
    SelectionEvent,
    TaskFeatureSnapshot,
)

logger = logging.getLogger(__name__)

HINGE_MARGIN = 1.0
# Deltas at or below this are treated as noise: no weight change, no rescoring.
MIN_EFFECTIVE_DELTA = 0.001
# Reorder and selection events kept in memory for export.
DEFAULT_HISTORY_SIZE = 500

_TRUE_STRINGS = frozenset({"1", "true", "yes", "y", "on"})
_FALSE_STRINGS = frozenset({"0", "false", "no", "n", "off"})

_CONFIG_FIELDS = frozenset(
    {"enabled", "learning_rate", "momentum", "max_weight_change", "min_weight", "max_weight"}
)


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def _parse_enabled(value: object) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    raise ValueError(f"enabled must be a boolean, got {value!r}")


def _snapshot(item: ScoredTask) -> TaskFeatureSnapshot:
    task = item.task
    return TaskFeatureSnapshot(
        priority=task.priority,
        score=item.score,
        factors=item.factors,
        effort=task.effort,
        has_deadline=task.deadline is not None,
        has_blocking=bool(task.blocking),
        has_dependencies=bool(task.dependencies),
    )


def _validate_config(st: LearnerState) -> None:
    if st.learning_rate <= 0:
        raise ValueError("learning_rate must be > 0")
    if not 0 <= st.momentum < 1:
        raise ValueError("momentum must be in [0, 1)")
    if st.max_weight_change <= 0:
        raise ValueError("max_weight_change must be > 0")
    if st.min_weight < 0:
        raise ValueError("min_weight must be >= 0")
    if st.min_weight > st.max_weight:
        raise ValueError("min_weight must be <= max_weight")


class OnlineLearner:
    """Pairwise-ranking weight learner bound to one EngineState."""

    def __init__(
        self,
        state: EngineState,
        *,
        clock: Clock | None = None,
        max_events: int = DEFAULT_HISTORY_SIZE,
    ) -> None:
        if max_events <= 0:
            raise ValueError("max_events must be > 0")
        self._state = state
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._reorders: deque[ReorderEvent] = deque(maxlen=max_events)
        self._selections: deque[SelectionEvent] = deque(maxlen=max_events)

    @property
    def weights(self) -> HeuristicWeights:
        return self._state.weights

    # ---- preference generation ----

    @staticmethod
    def generate_preferences(
        task_id: str,
        from_rank: int,
        to_rank: int,
        ranked: Sequence[ScoredTask],
    ) -> tuple[list[PairwisePreference], list[str]]:
        """
        Pairs implied by moving task_id from from_rank to to_rank.

        Promoted (to < from): the task beat everything in ranked[to:from].
        Demoted (to >= from): everything in ranked[from+1:to+1] beat the task.
        Returns (preferences, passed_ids).
        """
        dragged = next(it for it in ranked if it.id == task_id)

        if to_rank < from_rank:
            passed = [it for it in ranked[to_rank:from_rank] if it.id != task_id]
            prefs = [PairwisePreference(task_id, p.id, dragged.score - p.score) for p in passed]
        else:
            passed = [it for it in ranked[from_rank + 1 : to_rank + 1] if it.id != task_id]
            prefs = [PairwisePreference(p.id, task_id, p.score - dragged.score) for p in passed]

        return prefs, [p.id for p in passed]

    # ---- feedback entry points ----

    def log_reorder(
        self,
        task_id: str,
        from_rank: int,
        to_rank: int,
        ranked: Sequence[ScoredTask],
    ) -> ReorderResult:
        """
        Record a drag-reorder of the ranked view and maybe update the weights.

        ranked is the view as the user saw it before the drop.

        Raises:
            TaskNotFoundError: task_id is not part of the view.
            InvalidRankError: from_rank or to_rank is outside the view.
        """
        by_id = {it.id: it for it in ranked}
        dragged = by_id.get(task_id)
        if dragged is None:
            raise TaskNotFoundError(task_id, "ranked view")

        size = len(ranked)
        for rank in (from_rank, to_rank):
            if not 0 <= rank < size:
                raise InvalidRankError(rank, size)

        if ranked[from_rank].id != task_id:
            logger.warning(
                "Reorder view mismatch: %s reported at rank %d but view has %s there",
                task_id,
                from_rank,
                ranked[from_rank].id,
            )

        direction = ReorderDirection.PROMOTED if to_rank < from_rank else ReorderDirection.DEMOTED
        prefs, passed_ids = self.generate_preferences(task_id, from_rank, to_rank, ranked)

        st = self._state.learner
        applied_delta: HeuristicWeights | None = None
        changed = False
        if st.enabled and prefs:
            applied_delta, changed = self._update_weights(prefs, by_id)

        now = self._clock()
        st.total_updates += 1
        st.total_pairs += len(prefs)
        # Counted whether or not learning is enabled.
        st.correct_predictions += sum(1 for p in prefs if p.score_diff < 0)
        st.last_update_at = now

        event = ReorderEvent(
            task_id=task_id,
            from_rank=from_rank,
            to_rank=to_rank,
            direction=direction,
            timestamp=now,
            preferences=tuple(prefs),
            passed_ids=tuple(passed_ids),
            dragged_features=_snapshot(dragged),
            queue_size=size,
        )
        self._reorders.append(event)

        logger.info(
            "Reorder %s %d -> %d (%s): %d pairs, weights %s",
            task_id,
            from_rank,
            to_rank,
            direction.value,
            len(prefs),
            "updated" if changed else "unchanged",
        )

        return ReorderResult(
            event=event,
            pairs_generated=len(prefs),
            weight_update_applied=changed,
            applied_delta=applied_delta,
            new_weights=self._state.weights,
        )

    def log_selection(self, task_id: str, ranked: Sequence[ScoredTask]) -> SelectionEvent:
        """Record that the user started task_id; never changes weights."""
        rank = next((i for i, it in enumerate(ranked) if it.id == task_id), None)
        if rank is None:
            raise TaskNotFoundError(task_id, "ranked view")

        selected = ranked[rank]
        top = ranked[0]
        skipped = ranked[:rank]
        prefs = tuple(PairwisePreference(task_id, s.id, selected.score - s.score) for s in skipped)

        logger.info("Selection %s (rank %d/%d, was_top=%s)", task_id, rank + 1, len(ranked), rank == 0)

        event = SelectionEvent(
            selected_id=task_id,
            selected_rank=rank,
            selected_score=selected.score,
            top_id=top.id,
            top_score=top.score,
            queue_size=len(ranked),
            was_top_selected=rank == 0,
            timestamp=self._clock(),
            skipped_ids=tuple(s.id for s in skipped),
            preferences=prefs,
            selected_features=_snapshot(selected),
        )
        self._selections.append(event)
        return event

    # ---- update step ----

    def _update_weights(
        self,
        prefs: Sequence[PairwisePreference],
        by_id: dict[str, ScoredTask],
    ) -> tuple[HeuristicWeights, bool]:
        st = self._state.learner
        gradient = dict.fromkeys((w for _, w in FACTOR_WEIGHT_PAIRS), 0.0)
        total_loss = 0.0

        for pref in prefs:
            loss = max(0.0, HINGE_MARGIN + pref.score_diff)
            total_loss += loss
            if loss <= 0:
                continue
            preferred = by_id[pref.preferred_id].factors
            demoted = by_id[pref.demoted_id].factors
            for f, w in FACTOR_WEIGHT_PAIRS:
                gradient[w] += getattr(preferred, f) - getattr(demoted, f)

        if total_loss <= 0:
            # Scoring already agrees by at least the margin on every pair.
            return HeuristicWeights.zeros(), False

        n = len(prefs)
        buffer = st.momentum_buffer.as_dict()
        delta: dict[str, float] = {}
        for w, g in gradient.items():
            buffer[w] = st.momentum * buffer[w] + g / n
            delta[w] = _clamp(st.learning_rate * buffer[w], -st.max_weight_change, st.max_weight_change)
        st.momentum_buffer = HeuristicWeights(**buffer)
        applied = HeuristicWeights(**delta)

        if not any(abs(v) > MIN_EFFECTIVE_DELTA for v in delta.values()):
            logger.debug("Weight delta below %.3f, skipping update", MIN_EFFECTIVE_DELTA)
            return applied, False

        current = self._state.weights.as_dict()
        self._state.weights = HeuristicWeights(
            **{w: _clamp(current[w] + d, st.min_weight, st.max_weight) for w, d in delta.items()}
        )
        st.cumulative_loss += total_loss
        logger.info("Heuristic weights updated delta=%s loss=%.4f", applied.as_dict(), total_loss)
        return applied, True

    # ---- config / state ----

    def get_state(self) -> LearnerState:
        return replace(self._state.learner)

    def update_config(self, **changes: object) -> LearnerState:
        """
        Change learner settings (enabled, learning_rate, momentum, max_weight_change,
        min_weight, max_weight). Unknown keys raise ValueError; None values are ignored.
        Current weights are re-clamped into the new bounds.
        """
        unknown = set(changes) - _CONFIG_FIELDS
        if unknown:
            raise ValueError(f"Unknown learner setting(s): {', '.join(sorted(unknown))}")

        updates = {k: v for k, v in changes.items() if v is not None}
        for key in updates:
            if key == "enabled":
                updates[key] = _parse_enabled(updates[key])
            else:
                updates[key] = float(updates[key])  # type: ignore[arg-type]

        candidate = replace(self._state.learner, **updates)
        _validate_config(candidate)

        st = self._state.learner
        for f in fields(LearnerState):
            if f.name in updates:
                setattr(st, f.name, getattr(candidate, f.name))

        self._state.weights = self._state.weights.clamped(st.min_weight, st.max_weight)
        logger.info("Online learner config updated: %s", updates)
        return self.get_state()

    def set_weights(self, **changes: float) -> HeuristicWeights:
        """Explicit user edit of heuristic weights, kept inside [min_weight, max_weight]."""
        st = self._state.learner
        requested = self._state.weights.replace(**changes)
        bounded = requested.clamped(st.min_weight, st.max_weight)
        if bounded != requested:
            logger.warning(
                "Heuristic weights clamped to [%s, %s]: requested=%s",
                st.min_weight,
                st.max_weight,
                requested.as_dict(),
            )
        self._state.weights = bounded
        return bounded

    def metrics(self) -> LearnerMetrics:
        st = self._state.learner
        accuracy = (st.correct_predictions / st.total_pairs) * 100 if st.total_pairs > 0 else 0.0
        return LearnerMetrics(
            total_updates=st.total_updates,
            total_pairs=st.total_pairs,
            correct_predictions=st.correct_predictions,
            accuracy=round(accuracy, 2),
            cumulative_loss=round(st.cumulative_loss, 2),
            current_weights=self._state.weights,
            learning_rate=st.learning_rate,
            enabled=st.enabled,
        )

    # ---- history ----

    def reorder_events(self, limit: int | None = None) -> list[ReorderEvent]:
        events = list(self._reorders)
        return events[-limit:] if limit else events

    def selection_events(self, limit: int | None = None) -> list[SelectionEvent]:
        events = list(self._selections)
        return events[-limit:] if limit else events

    def clear_history(self) -> None:
        self._reorders.clear()
        self._selections.clear()
