# src/priority_forge/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
The host owns tasks and persistence; the core only sees these shapes.
"""

from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..learning.rebalance import RebalanceEvent

Clock = Callable[[], datetime]
# Returns an aware "now"; injected so deadline buckets are deterministic in tests.


class HeapItem(Protocol):
    """Anything the indexed heap can hold: a stable id and a numeric score."""

    @property
    def id(self) -> str: ...

    @property
    def score(self) -> float: ...


class RebalanceSink(Protocol):
    """
    Consumer of rebalance telemetry (e.g. a training-data exporter).

    Implementations must not rely on being called; the observer may drop events
    when no sink is configured.
    """

    def record(self, event: RebalanceEvent) -> None: ...
