"""
priority-forge: task ranking core.

Subpackages:
- tasks: data structures (Task, TaskFactors, HeuristicWeights, ...)
- ranking: indexed min-heap, scoring function, engine facade
- learning: online weight learner and rebalance observer
- cli / connectors: interactive console host
"""

from .errors import DuplicateItemError, InvalidRankError, RankingError, TaskNotFoundError
from .ranking.engine import PriorityEngine
from .ranking.heap import IndexedMinHeap

__all__ = [
    "PriorityEngine",
    "IndexedMinHeap",
    "RankingError",
    "TaskNotFoundError",
    "InvalidRankError",
    "DuplicateItemError",
]
