"""
Timer capability for periodic and one-shot work.
Decouples the capture state machines from any platform timer API.
"""

import heapq
import itertools
import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)


class TimerHandle:
    """
    Handle to a scheduled callback.
    Cancelling is idempotent: cancelling twice, or after a one-shot
    timer has fired, is a no-op.
    """

    def __init__(self, callback: Callable[[], None], due: float,
                 interval: Optional[float] = None):
        self.callback = callback
        self.due = due
        self.interval = interval
        self._fires = 0
        self._first_due = due
        self._cancelled = False

    def cancel(self) -> None:
        """Cancel the timer."""
        self._cancelled = True

    @property
    def active(self) -> bool:
        """True while the timer can still fire."""
        return not self._cancelled

    @property
    def repeating(self) -> bool:
        return self.interval is not None

    def _advance(self) -> None:
        # Anchor to the first due time so repeated ticks don't drift
        self._fires += 1
        self.due = self._first_due + self._fires * self.interval


class Scheduler(ABC):
    """
    Schedules future work. Callbacks never block the caller;
    "waiting" is always expressed as a timer.
    """

    @abstractmethod
    def now(self) -> float:
        """Current time in seconds on this scheduler's clock."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run callback once after delay seconds."""

    @abstractmethod
    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        """Run callback every interval seconds, first run one interval from now."""


class _TimerQueue:
    """Heap of timers ordered by due time, then arming order."""

    def __init__(self):
        self._heap: List[Tuple[float, int, TimerHandle]] = []
        self._counter = itertools.count()

    def push(self, handle: TimerHandle) -> None:
        heapq.heappush(self._heap, (handle.due, next(self._counter), handle))

    def peek_due(self) -> Optional[float]:
        self._drop_cancelled()
        return self._heap[0][0] if self._heap else None

    def pop_due(self, now: float) -> Optional[TimerHandle]:
        """Pop the earliest live timer due at or before now."""
        self._drop_cancelled()
        if self._heap and self._heap[0][0] <= now:
            return heapq.heappop(self._heap)[2]
        return None

    def clear(self) -> None:
        for _, _, handle in self._heap:
            handle.cancel()
        self._heap.clear()

    def _drop_cancelled(self) -> None:
        while self._heap and not self._heap[0][2].active:
            heapq.heappop(self._heap)

    def __len__(self) -> int:
        self._drop_cancelled()
        return sum(1 for _, _, h in self._heap if h.active)


def _fire(handle: TimerHandle, rearm: Callable[[TimerHandle], None]) -> None:
    """Run a timer's callback and re-arm it if it repeats."""
    if handle.repeating:
        handle._advance()
        rearm(handle)
    else:
        handle.cancel()
    try:
        handle.callback()
    except Exception:
        logger.exception("Timer callback failed")


class ManualScheduler(Scheduler):
    """
    Scheduler driven by a virtual clock.

    Time only moves when advance() is called, which makes debounce and
    timeout behaviour fully deterministic.

    Usage:
        scheduler = ManualScheduler()
        scheduler.call_later(0.5, on_settled)
        scheduler.advance(0.5)  # on_settled runs here
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue = _TimerQueue()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(callback, self._now + max(delay, 0.0))
        self._queue.push(handle)
        return handle

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        if interval <= 0:
            raise ValueError("interval must be positive")
        handle = TimerHandle(callback, self._now + interval, interval)
        self._queue.push(handle)
        return handle

    def advance(self, seconds: float) -> None:
        """
        Move the clock forward, firing every timer that falls due.
        Timers fire at their own due time, in due order.
        """
        target = self._now + seconds
        while True:
            due = self._queue.peek_due()
            # Small epsilon absorbs float error from repeated interval sums
            if due is None or due > target + 1e-9:
                break
            handle = self._queue.pop_due(due)
            self._now = max(self._now, due)
            _fire(handle, self._queue.push)
        self._now = target

    @property
    def pending(self) -> int:
        """Number of live timers."""
        return len(self._queue)


class ThreadedScheduler(Scheduler):
    """
    Scheduler backed by a single worker thread.
    All callbacks run on that thread, so they never overlap each other.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._queue = _TimerQueue()
        self._condition = threading.Condition()
        self._is_running = False
        self._thread: Optional[threading.Thread] = None

    def now(self) -> float:
        return self._clock()

    def start(self) -> None:
        """Start the worker thread."""
        with self._condition:
            if self._is_running:
                return
            self._is_running = True
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop the worker and drop all pending timers. Safe to call repeatedly."""
        with self._condition:
            self._is_running = False
            self._queue.clear()
            self._condition.notify_all()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=1.0)
        self._thread = None

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(callback, self.now() + max(delay, 0.0))
        self._push(handle)
        return handle

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        if interval <= 0:
            raise ValueError("interval must be positive")
        handle = TimerHandle(callback, self.now() + interval, interval)
        self._push(handle)
        return handle

    def _push(self, handle: TimerHandle) -> None:
        with self._condition:
            self._queue.push(handle)
            self._condition.notify_all()

    def _run(self) -> None:
        while True:
            with self._condition:
                if not self._is_running:
                    return
                due = self._queue.peek_due()
                now = self.now()
                if due is None or due > now:
                    timeout = None if due is None else due - now
                    self._condition.wait(timeout)
                    continue
                handle = self._queue.pop_due(now)
            if handle is not None:
                _fire(handle, self._push)

    @property
    def is_running(self) -> bool:
        return self._is_running

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False
