"""
Ranking subsystem.

Components:
- heap.py: IndexedMinHeap (array heap + id index owned together)
- scoring.py: factor derivation and weighted priority score
- engine.py: PriorityEngine, the host-facing facade tying scoring, heap and learner together
"""
