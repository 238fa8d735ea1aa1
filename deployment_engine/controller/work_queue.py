# deployment_engine/controller/work_queue.py
"""Work queue with per-key de-duplication, serialization and delayed adds."""

import heapq
import itertools
import threading
import time
from collections import deque
from typing import Callable, Deque, Hashable, List, Optional, Set, Tuple


class WorkQueue:
    """
    FIFO of keys.

    - A key queued twice is handed out once.
    - A key being processed is never handed out again until `done`;
      re-adds during processing are queued when it finishes.
    - `add_after` schedules a delayed add.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._queue: Deque[Hashable] = deque()
        self._dirty: Set[Hashable] = set()
        self._processing: Set[Hashable] = set()
        self._waiting: List[Tuple[float, int, Hashable]] = []
        self._sequence = itertools.count()
        self._shutting_down = False
        self._cond = threading.Condition()

    def add(self, key: Hashable) -> None:
        with self._cond:
            self._add_locked(key)

    def _add_locked(self, key: Hashable) -> None:
        if self._shutting_down or key in self._dirty:
            return
        self._dirty.add(key)
        if key in self._processing:
            return
        self._queue.append(key)
        self._cond.notify()

    def add_after(self, key: Hashable, delay: float) -> None:
        if delay <= 0:
            self.add(key)
            return
        with self._cond:
            if self._shutting_down:
                return
            heapq.heappush(self._waiting, (self._clock() + delay, next(self._sequence), key))
            self._cond.notify()

    def get(self, timeout: Optional[float] = None) -> Optional[Hashable]:
        """
        Block until a key is ready.

        Returns None on timeout or after shut down.
        """
        deadline = None if timeout is None else self._clock() + timeout
        with self._cond:
            while True:
                self._promote_waiting_locked()

                if self._queue:
                    key = self._queue.popleft()
                    self._processing.add(key)
                    self._dirty.discard(key)
                    return key

                if self._shutting_down:
                    return None

                wait_for = self._next_wait_locked(deadline)
                if wait_for is not None and wait_for <= 0:
                    return None
                self._cond.wait(wait_for)

    def done(self, key: Hashable) -> None:
        with self._cond:
            self._processing.discard(key)
            if key in self._dirty:
                self._queue.append(key)
                self._cond.notify()

    def shut_down(self) -> None:
        with self._cond:
            self._shutting_down = True
            self._cond.notify_all()

    def is_shutting_down(self) -> bool:
        with self._cond:
            return self._shutting_down

    def __len__(self) -> int:
        with self._cond:
            return len(self._queue)

    def pending_delayed(self) -> int:
        with self._cond:
            return len(self._waiting)

    # -------------------------
    # HELPERS
    # -------------------------

    def _promote_waiting_locked(self) -> None:
        now = self._clock()
        while self._waiting and self._waiting[0][0] <= now:
            _, _, key = heapq.heappop(self._waiting)
            self._add_locked(key)

    def _next_wait_locked(self, deadline: Optional[float]) -> Optional[float]:
        now = self._clock()
        candidates = []
        if self._waiting:
            candidates.append(self._waiting[0][0] - now)
        if deadline is not None:
            remaining = deadline - now
            if remaining <= 0:
                return 0
            candidates.append(remaining)
        if not candidates:
            return None
        return max(min(candidates), 0.001)
