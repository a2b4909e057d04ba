# src/priority_forge/ranking/heap.py

from __future__ import annotations

"""
Indexed min-heap.

The backing list and the id -> slot index are owned by one object and only
ever changed together, so callers can address items by id without a linear
scan. Lower score = extracted first.
"""

import logging
from collections.abc import Iterable, Iterator
from typing import Generic, TypeVar

from ..core.ports import HeapItem
from ..errors import DuplicateItemError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=HeapItem)


class IndexedMinHeap(Generic[T]):
    """
    Binary min-heap keyed by item.id.

    Complexity:
    - push / pop / update / remove: O(log n)
    - get / has: O(1)
    - rebuild: O(n)
    - to_sorted_array: O(n log n), does not mutate
    """

    def __init__(self, items: Iterable[T] = ()) -> None:
        self._heap: list[T] = []
        self._index: dict[str, int] = {}
        items = list(items)
        if items:
            self._build(items)

    # ---- low-level helpers ----

    def _build(self, items: list[T]) -> None:
        index: dict[str, int] = {}
        for i, item in enumerate(items):
            if item.id in index:
                raise DuplicateItemError(item.id)
            index[item.id] = i

        self._heap = items
        self._index = index
        for i in range(len(self._heap) // 2 - 1, -1, -1):
            self._sift_down(i)

    def _swap(self, i: int, j: int) -> None:
        heap = self._heap
        heap[i], heap[j] = heap[j], heap[i]
        self._index[heap[i].id] = i
        self._index[heap[j].id] = j

    def _sift_up(self, i: int) -> None:
        heap = self._heap
        while i > 0:
            parent = (i - 1) // 2
            if heap[parent].score <= heap[i].score:
                break
            self._swap(i, parent)
            i = parent

    def _sift_down(self, i: int) -> None:
        heap = self._heap
        n = len(heap)
        while True:
            smallest = i
            left = 2 * i + 1
            right = left + 1
            if left < n and heap[left].score < heap[smallest].score:
                smallest = left
            if right < n and heap[right].score < heap[smallest].score:
                smallest = right
            if smallest == i:
                return
            self._swap(i, smallest)
            i = smallest

    def _take_last_into(self, idx: int) -> None:
        """Move the last element into slot idx and restore the heap property there."""
        last = self._heap.pop()
        if idx == len(self._heap):
            return
        self._heap[idx] = last
        self._index[last.id] = idx
        if idx > 0 and self._heap[(idx - 1) // 2].score > last.score:
            self._sift_up(idx)
        else:
            self._sift_down(idx)

    # ---- public API ----

    def push(self, item: T) -> None:
        if item.id in self._index:
            raise DuplicateItemError(item.id)
        self._heap.append(item)
        idx = len(self._heap) - 1
        self._index[item.id] = idx
        self._sift_up(idx)

    def pop(self) -> T | None:
        """Remove and return the minimum-score item, or None when empty."""
        if not self._heap:
            return None
        top = self._heap[0]
        del self._index[top.id]
        self._take_last_into(0)
        return top

    def peek(self) -> T | None:
        return self._heap[0] if self._heap else None

    def update(self, item_id: str, item: T) -> bool:
        """
        Replace the item stored under item_id and re-heapify.

        Returns False if item_id is not held. If item.id differs from item_id the
        entry is re-keyed.
        """
        idx = self._index.get(item_id)
        if idx is None:
            return False

        if item.id != item_id:
            if item.id in self._index:
                raise DuplicateItemError(item.id)
            del self._index[item_id]
            self._index[item.id] = idx

        old_score = self._heap[idx].score
        self._heap[idx] = item

        if item.score < old_score:
            self._sift_up(idx)
        elif item.score > old_score:
            self._sift_down(idx)
        return True

    def remove(self, item_id: str) -> T | None:
        """Remove an arbitrary item by id; returns it, or None if absent."""
        idx = self._index.pop(item_id, None)
        if idx is None:
            return None
        item = self._heap[idx]
        self._take_last_into(idx)
        return item

    def get(self, item_id: str) -> T | None:
        idx = self._index.get(item_id)
        return self._heap[idx] if idx is not None else None

    def has(self, item_id: str) -> bool:
        return item_id in self._index

    def size(self) -> int:
        return len(self._heap)

    def is_empty(self) -> bool:
        return not self._heap

    def to_array(self) -> list[T]:
        """Copy of the internal layout (heap order, not sorted)."""
        return list(self._heap)

    def to_sorted_array(self) -> list[T]:
        """Ascending by score; ties keep their array order."""
        return sorted(self._heap, key=lambda it: it.score)

    def ids(self) -> list[str]:
        return [it.id for it in self.to_sorted_array()]

    def rebuild(self, items: Iterable[T] | None = None) -> None:
        """
        O(n) bottom-up heapify.

        Without arguments the current items are re-heapified in place (use after
        scores were changed in bulk). With items, the contents are replaced.
        """
        new_items = list(self._heap) if items is None else list(items)
        self._build(new_items)
        logger.debug("Heap rebuilt size=%d", len(self._heap))

    def clear(self) -> None:
        self._heap = []
        self._index = {}

    def check_invariants(self) -> bool:
        heap = self._heap
        if len(self._index) != len(heap):
            return False
        for i, item in enumerate(heap):
            if self._index.get(item.id) != i:
                return False
            if i > 0 and heap[(i - 1) // 2].score > item.score:
                return False
        return True

    # ---- dunder helpers ----

    def __len__(self) -> int:
        return len(self._heap)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._index

    def __iter__(self) -> Iterator[T]:
        return iter(self.to_sorted_array())

    def __bool__(self) -> bool:
        return bool(self._heap)

    def __repr__(self) -> str:
        top = self.peek()
        return f"IndexedMinHeap(size={len(self._heap)}, top={top.id if top else None!r})"
