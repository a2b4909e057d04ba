# src/priority_forge/errors.py

from __future__ import annotations


class RankingError(Exception):
    """Base class for recoverable ranking-core errors."""


class TaskNotFoundError(RankingError, KeyError):
    """A task id is not held by the heap / ranked view."""

    def __init__(self, task_id: str, where: str = "queue") -> None:
        super().__init__(task_id)
        self.task_id = task_id
        self.where = where

    def __str__(self) -> str:
        return f"Task {self.task_id!r} not found in {self.where}"


class InvalidRankError(RankingError, ValueError):
    """A rank lies outside the current ranked view."""

    def __init__(self, rank: int, size: int) -> None:
        super().__init__(f"Rank {rank} is outside the ranked view (size={size})")
        self.rank = rank
        self.size = size


class DuplicateItemError(RankingError, ValueError):
    """An id is already present where it must be unique."""

    def __init__(self, item_id: str) -> None:
        super().__init__(f"Item {item_id!r} already exists")
        self.item_id = item_id
