"""
Time sources and cancellation for the claim watcher.
"""
import heapq
import itertools
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple


class CancellationToken:
    """Thread-safe cancellation signal shared between a caller and a watch."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Block for up to ``timeout`` seconds; return True if cancelled."""
        return self._event.wait(timeout)


class Clock(ABC):
    """Source of monotonic time that can suspend the caller."""

    @abstractmethod
    def now(self) -> float:
        """Current monotonic time in seconds."""
        pass

    @abstractmethod
    def sleep(self, seconds: float, cancel: Optional[CancellationToken] = None) -> bool:
        """
        Suspend for ``seconds``.

        Returns:
            True if the sleep was cut short by cancellation
        """
        pass


class SystemClock(Clock):
    """Wall-clock implementation backed by time.monotonic."""

    def now(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float, cancel: Optional[CancellationToken] = None) -> bool:
        if seconds <= 0:
            return bool(cancel and cancel.cancelled)
        if cancel is None:
            time.sleep(seconds)
            return False
        return cancel.wait(seconds)


class VirtualClock(Clock):
    """
    Clock that advances instantly when slept on.

    Callbacks registered with ``call_at`` run, in time order, when a sleep
    passes their scheduled time. A callback may cancel the sleeping watch.
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._counter = itertools.count()
        self._scheduled: List[Tuple[float, int, Callable[[], None]]] = []
        self.sleeps: List[float] = []

    def now(self) -> float:
        return self._now

    def call_at(self, when: float, callback: Callable[[], None]) -> None:
        heapq.heappush(self._scheduled, (when, next(self._counter), callback))

    def advance(self, seconds: float) -> None:
        self._run_until(self._now + seconds)

    def sleep(self, seconds: float, cancel: Optional[CancellationToken] = None) -> bool:
        self.sleeps.append(seconds)
        target = self._now + max(seconds, 0.0)
        while self._scheduled and self._scheduled[0][0] <= target:
            when, _, callback = heapq.heappop(self._scheduled)
            self._now = max(self._now, when)
            callback()
            if cancel is not None and cancel.cancelled:
                return True
        self._now = target
        return bool(cancel and cancel.cancelled)

    def _run_until(self, target: float) -> None:
        while self._scheduled and self._scheduled[0][0] <= target:
            when, _, callback = heapq.heappop(self._scheduled)
            self._now = max(self._now, when)
            callback()
        self._now = max(self._now, target)
