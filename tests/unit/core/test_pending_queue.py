"""
Unit tests for the pending point queue.
"""

import pytest

from support_tree.core.pending import PendingQueue
from support_tree.core.types import SupportPoint


def points(*locations):
    return [SupportPoint(loc) for loc in locations]


class TestPendingQueue:
    """Tests for PendingQueue ordering and removal."""

    def test_pops_highest_first(self):
        queue = PendingQueue(points((0, 0, 1), (0, 0, 3), (0, 0, 2)))
        heights = [queue.pop()[1].z for _ in range(3)]
        assert heights == [3.0, 2.0, 1.0]

    def test_ties_broken_by_x_plus_y_descending(self):
        """At equal height the point with the larger x+y comes out first."""
        queue = PendingQueue(points((0, 0, 2), (3, 1, 2), (1, 1, 2)))
        order = [queue.pop()[1].location for _ in range(3)]
        assert order == [(3.0, 1.0, 2.0), (1.0, 1.0, 2.0), (0.0, 0.0, 2.0)]

    def test_full_ties_keep_insertion_order(self):
        queue = PendingQueue()
        first = queue.push(SupportPoint((1, 0, 2)))
        second = queue.push(SupportPoint((0, 1, 2)))
        assert queue.pop()[0] == first
        assert queue.pop()[0] == second

    def test_remove_by_id(self):
        """Removed entries are skipped by pop and peek."""
        queue = PendingQueue()
        top = queue.push(SupportPoint((0, 0, 5)))
        queue.push(SupportPoint((0, 0, 1)))
        removed = queue.remove(top)
        assert removed.z == 5.0
        assert len(queue) == 1
        assert queue.peek()[1].z == 1.0
        assert queue.pop()[1].z == 1.0
        assert not queue

    def test_entries_follow_queue_order(self):
        queue = PendingQueue(points((0, 0, 1), (2, 2, 4), (0, 0, 4)))
        assert [p.location for _, p in queue.entries()] == [
            (2.0, 2.0, 4.0), (0.0, 0.0, 4.0), (0.0, 0.0, 1.0),
        ]

    def test_get_and_contains(self):
        queue = PendingQueue()
        entry_id = queue.push(SupportPoint((1, 2, 3)))
        assert queue.get(entry_id) == SupportPoint((1, 2, 3))
        assert SupportPoint((1, 2, 3)) in queue
        assert SupportPoint((1, 2, 4)) not in queue
        assert queue.get(entry_id + 100) is None

    def test_iteration_yields_points(self):
        queue = PendingQueue(points((0, 0, 1), (0, 0, 2)))
        assert [p.z for p in queue] == [2.0, 1.0]

    def test_pop_from_empty_raises(self):
        with pytest.raises(IndexError):
            PendingQueue().pop()

    def test_peek_from_empty_raises(self):
        with pytest.raises(IndexError):
            PendingQueue().peek()
