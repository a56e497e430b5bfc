"""
Indexed priority queue of unresolved support points.

Points are popped highest first, tie-broken by descending x+y, then by
insertion order. Every entry has a stable integer id so callers can
remove a specific point without holding a reference into an iteration.
"""

import heapq
import itertools
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .types import SupportPoint


class PendingQueue:
    """
    Priority structure keyed by (height desc, x+y desc).

    Removal is lazy: removed ids stay in the heap and are skipped on pop.
    """

    def __init__(self, points: Optional[Iterable[SupportPoint]] = None):
        self._heap: List[Tuple[float, float, int]] = []
        self._entries: Dict[int, SupportPoint] = {}
        self._counter = itertools.count()
        if points is not None:
            for point in points:
                self.push(point)

    def push(self, point: SupportPoint) -> int:
        """Insert a point and return its id."""
        entry_id = next(self._counter)
        self._entries[entry_id] = point
        key = point.sort_key()
        heapq.heappush(self._heap, (key[0], key[1], entry_id))
        return entry_id

    def pop(self) -> Tuple[int, SupportPoint]:
        """Remove and return the front (highest) entry."""
        self._discard_removed()
        if not self._heap:
            raise IndexError("pop from empty PendingQueue")
        _, _, entry_id = heapq.heappop(self._heap)
        return entry_id, self._entries.pop(entry_id)

    def peek(self) -> Tuple[int, SupportPoint]:
        """Return the front entry without removing it."""
        self._discard_removed()
        if not self._heap:
            raise IndexError("peek from empty PendingQueue")
        entry_id = self._heap[0][2]
        return entry_id, self._entries[entry_id]

    def remove(self, entry_id: int) -> SupportPoint:
        """Remove the entry with the given id."""
        return self._entries.pop(entry_id)

    def get(self, entry_id: int) -> Optional[SupportPoint]:
        return self._entries.get(entry_id)

    def entries(self) -> List[Tuple[int, SupportPoint]]:
        """All live entries in queue order."""
        return sorted(
            self._entries.items(),
            key=lambda item: (item[1].sort_key(), item[0]),
        )

    def points(self) -> List[SupportPoint]:
        return [point for _, point in self.entries()]

    def _discard_removed(self) -> None:
        while self._heap and self._heap[0][2] not in self._entries:
            heapq.heappop(self._heap)

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __iter__(self) -> Iterator[SupportPoint]:
        return iter(self.points())

    def __contains__(self, point: SupportPoint) -> bool:
        return any(p == point for p in self._entries.values())


__all__ = ["PendingQueue"]
