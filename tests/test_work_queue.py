#tests\test_work_queue.py

"""Test work queue de-duplication and delayed adds."""

import threading

from deployment_engine.controller.work_queue import WorkQueue
from deployment_engine.core.resources import NamespacedKey


SHOP = NamespacedKey("tenant-a", "shop")
BLOG = NamespacedKey("tenant-a", "blog")


class FakeMonotonic:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


class TestWorkQueue:

    def test_fifo(self):
        queue = WorkQueue()
        queue.add(SHOP)
        queue.add(BLOG)

        assert queue.get(timeout=0) == SHOP
        assert queue.get(timeout=0) == BLOG

    def test_duplicate_adds_collapse(self):
        queue = WorkQueue()
        queue.add(SHOP)
        queue.add(SHOP)

        assert len(queue) == 1
        assert queue.get(timeout=0) == SHOP
        assert queue.get(timeout=0) is None

    def test_key_not_handed_out_while_processing(self):
        """Re-adds during processing wait for done()."""
        queue = WorkQueue()
        queue.add(SHOP)
        key = queue.get(timeout=0)

        queue.add(SHOP)

        assert queue.get(timeout=0) is None
        queue.done(key)
        assert queue.get(timeout=0) == SHOP

    def test_done_without_readd_drops_key(self):
        queue = WorkQueue()
        queue.add(SHOP)
        queue.done(queue.get(timeout=0))

        assert queue.get(timeout=0) is None

    def test_add_after(self):
        clock = FakeMonotonic()
        queue = WorkQueue(clock=clock)

        queue.add_after(SHOP, 30)

        assert queue.pending_delayed() == 1
        assert queue.get(timeout=0) is None
        clock.now += 30
        assert queue.get(timeout=0) == SHOP
        assert queue.pending_delayed() == 0

    def test_add_after_zero_is_immediate(self):
        queue = WorkQueue()
        queue.add_after(SHOP, 0)

        assert queue.get(timeout=0) == SHOP

    def test_delayed_adds_ordered_by_due_time(self):
        clock = FakeMonotonic()
        queue = WorkQueue(clock=clock)
        queue.add_after(SHOP, 20)
        queue.add_after(BLOG, 10)

        clock.now += 20

        assert queue.get(timeout=0) == BLOG
        assert queue.get(timeout=0) == SHOP

    def test_shut_down_releases_waiters(self):
        queue = WorkQueue()
        results = []
        waiter = threading.Thread(target=lambda: results.append(queue.get()))
        waiter.start()

        queue.shut_down()
        waiter.join(timeout=2)

        assert not waiter.is_alive()
        assert results == [None]
        assert queue.is_shutting_down()

    def test_adds_ignored_after_shut_down(self):
        queue = WorkQueue()
        queue.shut_down()

        queue.add(SHOP)
        queue.add_after(BLOG, 5)

        assert len(queue) == 0
        assert queue.pending_delayed() == 0

    def test_blocking_get_wakes_on_add(self):
        queue = WorkQueue()
        results = []
        waiter = threading.Thread(target=lambda: results.append(queue.get(timeout=5)))
        waiter.start()

        queue.add(SHOP)
        waiter.join(timeout=5)

        assert results == [SHOP]
