"""
In-memory batch sinks.
"""

import threading
from typing import Any, Callable, Dict, Generic, Hashable, List, Optional, TypeVar

from crawlkit.utils.logging import get_logger


logger = get_logger(__name__)

T = TypeVar("T")


class GroupingAggregator(Generic[T]):
    """
    Thread-safe sink that groups flushed items by key and keeps running totals.

    Pass the aggregator itself as the ``flush`` callback of a ``BatchingQueue``::

        by_party = GroupingAggregator(key=lambda d: d.party, value=lambda d: d.total)
        queue = BatchingQueue(100, 5.0, by_party)
    """

    def __init__(self,
                 key: Callable[[T], Hashable],
                 value: Optional[Callable[[T], float]] = None):
        """
        Initialize aggregator.

        Args:
            key: Extracts the group key from an item
            value: Optional numeric value summed per group
        """
        self.key = key
        self.value = value
        self._items: List[T] = []
        self._groups: Dict[Hashable, List[T]] = {}
        self._totals: Dict[Hashable, float] = {}
        self._batches = 0
        self._lock = threading.Lock()

    def __call__(self, batch: List[T]) -> None:
        self.add_batch(batch)

    def add_batch(self, batch: List[T]) -> None:
        """
        Fold one batch into the groups.

        Keys and values are computed before taking the lock, so a bad item
        leaves the aggregate untouched.
        """
        keyed = [(self.key(item), item) for item in batch]
        values = [self.value(item) for item in batch] if self.value else None

        with self._lock:
            self._batches += 1
            for index, (group, item) in enumerate(keyed):
                self._items.append(item)
                self._groups.setdefault(group, []).append(item)
                if values is not None:
                    self._totals[group] = self._totals.get(group, 0.0) + values[index]

        logger.debug(f"Aggregated batch of {len(batch)} items into {len(self._groups)} groups")

    def items(self) -> List[T]:
        """All aggregated items in delivery order."""
        with self._lock:
            return list(self._items)

    def groups(self) -> Dict[Hashable, List[T]]:
        with self._lock:
            return {group: list(items) for group, items in self._groups.items()}

    def totals(self) -> Dict[Hashable, float]:
        with self._lock:
            return dict(self._totals)

    def ranked_totals(self, limit: Optional[int] = None) -> List[tuple]:
        """``(key, total)`` pairs sorted by total, largest first."""
        ranked = sorted(self.totals().items(), key=lambda pair: pair[1], reverse=True)
        return ranked[:limit] if limit is not None else ranked

    def get_summary(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "batches": self._batches,
                "items": len(self._items),
                "groups": len(self._groups),
                "grand_total": sum(self._totals.values()),
            }
