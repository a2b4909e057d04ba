# src/priority_forge/tasks/task_models.py

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from dataclasses import replace as _dc_replace
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any


class Priority(StrEnum):
    """Ordinal priority label. P0 is the most urgent."""

    P0 = "P0"
    P1 = "P1"
    P2 = "P2"
    P3 = "P3"

    @classmethod
    def from_raw(cls, raw: str | Priority) -> Priority:
        if isinstance(raw, Priority):
            return raw
        value = str(raw or "").strip().upper()
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unknown priority label: {raw!r}") from None


class Effort(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_raw(cls, raw: str | Effort | None) -> Effort | None:
        if raw is None or isinstance(raw, Effort):
            return raw
        value = str(raw).strip().lower()
        if not value:
            return None
        return cls(value)


class TaskStatus(StrEnum):
    """
    Task lifecycle status.

    Notes:
    - "complete" tasks stay visible to factor computation (they still count as
      dependents) but never appear in a ranked view.
    """

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"
    BLOCKED = "blocked"
    WAITING = "waiting"

    @classmethod
    def from_raw(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.NOT_STARTED
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return cls.NOT_STARTED


def _parse_deadline(raw: Any) -> datetime | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        dt = raw
    else:
        text = str(raw).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass(slots=True)
class Task:
    """
    A work item as owned by the host's task store.

    The ranking core never mutates a Task; it keeps references and replaces
    them when the host reports a change.
    """

    id: str
    priority: Priority
    project: str = ""
    status: TaskStatus = TaskStatus.NOT_STARTED
    title: str = ""

    deadline: datetime | None = None
    effort: Effort | None = None
    blocking: str | None = None  # id of the task this blocks, or a free-text tag
    dependencies: tuple[str, ...] = ()

    # Manual per-task factor values; they win over computed factors.
    factor_overrides: dict[str, float] = field(default_factory=dict)

    @property
    def is_complete(self) -> bool:
        return self.status == TaskStatus.COMPLETE

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Task:
        """
        Build a Task from a JSON-style mapping.

        Accepts both camelCase (as exported by the dashboard) and snake_case keys.
        Unknown keys are ignored.
        """
        task_id = str(data.get("id") or "").strip()
        if not task_id:
            raise ValueError("id is required")

        deps_raw = data.get("dependencies") or ()
        if isinstance(deps_raw, str):
            deps_raw = [deps_raw]

        overrides_raw = data.get("factor_overrides", data.get("factorOverrides", data.get("weights"))) or {}
        overrides: dict[str, float] = {}
        for key, value in dict(overrides_raw).items():
            if value is None:
                continue
            overrides[_FACTOR_ALIASES.get(key, key)] = float(value)

        return cls(
            id=task_id,
            priority=Priority.from_raw(data.get("priority", "P2")),
            project=str(data.get("project") or ""),
            status=TaskStatus.from_raw(data.get("status")),
            title=str(data.get("title", data.get("task")) or ""),
            deadline=_parse_deadline(data.get("deadline")),
            effort=Effort.from_raw(data.get("effort")),
            blocking=(str(data["blocking"]) if data.get("blocking") else None),
            dependencies=tuple(str(d) for d in deps_raw),
            factor_overrides=overrides,
        )


@dataclass(slots=True, frozen=True)
class TaskFactors:
    """Derived per-task signals; recomputed whenever the task set changes."""

    blocking_count: float = 0.0  # 0..10
    cross_project_impact: float = 0.0  # 0/1
    time_sensitivity: float = 0.0  # 0..10
    effort_value_ratio: float = 0.0  # 0..9
    dependency_depth: float = 0.0  # 0..5

    def as_dict(self) -> dict[str, float]:
        return {f.name: float(getattr(self, f.name)) for f in fields(self)}

    def with_overrides(self, overrides: Mapping[str, float | None] | None) -> TaskFactors:
        """Apply explicit values; None values and unknown keys are ignored."""
        if not overrides:
            return self
        known = {f.name for f in fields(self)}
        changes: dict[str, float] = {}
        for key, value in overrides.items():
            name = _FACTOR_ALIASES.get(key, key)
            if value is None or name not in known:
                continue
            changes[name] = float(value)
        return _dc_replace(self, **changes) if changes else self


@dataclass(slots=True, frozen=True)
class HeuristicWeights:
    """Tunable multipliers, one per factor."""

    blocking: float = 10.0
    cross_project: float = 5.0
    time_sensitive: float = 8.0
    effort_value: float = 3.0
    dependency: float = 2.0

    @classmethod
    def zeros(cls) -> HeuristicWeights:
        return cls(0.0, 0.0, 0.0, 0.0, 0.0)

    def as_dict(self) -> dict[str, float]:
        return {f.name: float(getattr(self, f.name)) for f in fields(self)}

    def replace(self, **changes: float) -> HeuristicWeights:
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise ValueError(f"Unknown heuristic weight(s): {', '.join(sorted(unknown))}")
        return _dc_replace(self, **{k: float(v) for k, v in changes.items()})

    def clamped(self, lo: float, hi: float) -> HeuristicWeights:
        return HeuristicWeights(**{k: max(lo, min(hi, v)) for k, v in self.as_dict().items()})


# Factor field -> weight field. Order is the canonical factor order.
FACTOR_WEIGHT_PAIRS: tuple[tuple[str, str], ...] = (
    ("blocking_count", "blocking"),
    ("cross_project_impact", "cross_project"),
    ("time_sensitivity", "time_sensitive"),
    ("effort_value_ratio", "effort_value"),
    ("dependency_depth", "dependency"),
)

# camelCase names used by the dashboard export.
_FACTOR_ALIASES = {
    "blockingCount": "blocking_count",
    "crossProjectImpact": "cross_project_impact",
    "timeSensitivity": "time_sensitivity",
    "effortValueRatio": "effort_value_ratio",
    "dependencyDepth": "dependency_depth",
}


@dataclass(slots=True, frozen=True)
class RankedItem:
    """The only shape the heap needs. Lower score = higher priority."""

    id: str
    score: float


@dataclass(slots=True, frozen=True)
class ScoredTask(RankedItem):
    task: Task
    factors: TaskFactors
