from __future__ import annotations

import heapq
import itertools
import threading
import time
from collections import deque
from typing import Generic, Hashable, TypeVar

K = TypeVar("K", bound=Hashable)

DEFAULT_BASE_DELAY = 0.005
DEFAULT_MAX_DELAY = 1000.0


class ShutDownError(Exception):
    pass


class WorkQueue(Generic[K]):
    """Rate limited queue of keys.

    A key is queued at most once at a time and is never handed to two
    consumers at once. A key added while it is being processed is queued
    again when the consumer calls ``done``. Failed keys are re-added with a
    per key exponential backoff that ``forget`` resets.
    """

    def __init__(
        self,
        base_delay: float = DEFAULT_BASE_DELAY,
        max_delay: float = DEFAULT_MAX_DELAY,
    ):
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._cond = threading.Condition()
        self._queue: deque[K] = deque()
        self._dirty: set[K] = set()
        self._processing: set[K] = set()
        self._waiting: list[tuple[float, int, K]] = []
        self._failures: dict[K, int] = {}
        self._counter = itertools.count()
        self._shutting_down = False

    def __len__(self) -> int:
        with self._cond:
            return len(self._queue)

    def add(self, key: K) -> None:
        with self._cond:
            self._add(key)

    def _add(self, key: K) -> None:
        if self._shutting_down or key in self._dirty:
            return
        self._dirty.add(key)
        if key in self._processing:
            return
        self._queue.append(key)
        self._cond.notify()

    def add_after(self, key: K, delay: float) -> None:
        with self._cond:
            if self._shutting_down:
                return
            if delay <= 0:
                self._add(key)
                return
            heapq.heappush(
                self._waiting,
                (time.monotonic() + delay, next(self._counter), key),
            )
            # wake a waiting consumer so it recomputes its timeout
            self._cond.notify()

    def when(self, key: K) -> float:
        """Record a failure of ``key`` and return its backoff delay."""
        with self._cond:
            failures = self._failures.get(key, 0)
            self._failures[key] = failures + 1
        # float overflow past 2**1023
        if failures > 62:
            return self.max_delay
        return min(self.base_delay * (2**failures), self.max_delay)

    def add_rate_limited(self, key: K) -> float:
        delay = self.when(key)
        self.add_after(key, delay)
        return delay

    def forget(self, key: K) -> None:
        with self._cond:
            self._failures.pop(key, None)

    def num_requeues(self, key: K) -> int:
        with self._cond:
            return self._failures.get(key, 0)

    def _promote_due(self) -> float | None:
        now = time.monotonic()
        while self._waiting and self._waiting[0][0] <= now:
            _, _, key = heapq.heappop(self._waiting)
            self._add(key)
        if self._waiting:
            return self._waiting[0][0] - now
        return None

    def get(self, timeout: float | None = None) -> K | None:
        """Take the next key.

        Args:
            timeout: Seconds to wait for a key, forever when None.

        Returns:
            The key, or None when the timeout expired.

        Raises:
            ShutDownError: The queue was shut down.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while True:
                next_due = self._promote_due()
                if self._queue:
                    key = self._queue.popleft()
                    self._processing.add(key)
                    self._dirty.discard(key)
                    return key
                if self._shutting_down:
                    raise ShutDownError()
                wait = next_due
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        return None
                    wait = remaining if wait is None else min(wait, remaining)
                self._cond.wait(wait)

    def done(self, key: K) -> None:
        with self._cond:
            self._processing.discard(key)
            if key in self._dirty:
                self._queue.append(key)
                self._cond.notify()

    def shut_down(self) -> None:
        with self._cond:
            self._shutting_down = True
            self._waiting.clear()
            self._queue.clear()
            self._dirty.clear()
            self._cond.notify_all()

    @property
    def shutting_down(self) -> bool:
        with self._cond:
            return self._shutting_down
