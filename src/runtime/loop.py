"""
Single-threaded control loop.

The control loop is the one context allowed to touch overlay shapes, swap
pipeline state and fire scheduler ticks. Other threads never call into those
objects directly; they post callbacks with call_soon_threadsafe().

Example:
    loop = ControlLoop()
    loop.call_every(5.0, scheduler.tick)
    loop.run_forever()   # blocks until loop.stop()
"""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
import time
from collections import deque
from typing import Any, Callable, Deque, List, Optional, Protocol, Tuple


class Clock(Protocol):
    def time(self) -> float:
        """Wall-clock seconds since epoch."""
        ...

    def monotonic(self) -> float:
        """Monotonic seconds, used for timer deadlines."""
        ...


class SystemClock:
    """Clock backed by the time module."""

    def time(self) -> float:
        return time.time()

    def monotonic(self) -> float:
        return time.monotonic()


class ManualClock:
    """
    Deterministic clock for tests and simulations.

    Both wall and monotonic time move only when advance() is called.
    """

    def __init__(self, start_time: float = 1_700_000_000.0):
        self._wall = float(start_time)
        self._mono = 0.0
        self._lock = threading.Lock()

    def time(self) -> float:
        with self._lock:
            return self._wall

    def monotonic(self) -> float:
        with self._lock:
            return self._mono

    def advance(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError("cannot move a clock backwards")
        with self._lock:
            self._wall += seconds
            self._mono += seconds


class TimerHandle:
    """Handle for a scheduled callback. cancel() is idempotent."""

    def __init__(
        self,
        deadline: float,
        callback: Callable[..., Any],
        args: Tuple[Any, ...],
        interval: Optional[float] = None,
    ):
        self.deadline = deadline
        self.interval = interval
        self._callback = callback
        self._args = args
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def periodic(self) -> bool:
        return self.interval is not None

    def cancel(self) -> None:
        self._cancelled = True

    def _run(self) -> None:
        self._callback(*self._args)


class ControlLoop:
    """
    Cooperative callback + timer loop running on one thread.

    Periodic timers are fixed-rate: each next deadline is the previous
    deadline plus the interval, so a late loop catches up instead of
    drifting. Callback exceptions are logged and never stop the loop.
    """

    def __init__(self, clock: Optional[Clock] = None, max_idle_wait: float = 0.5):
        self.clock: Clock = clock or SystemClock()
        self._max_idle_wait = max_idle_wait
        self._ready: Deque[Tuple[Callable[..., Any], Tuple[Any, ...]]] = deque()
        self._timers: List[Tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()
        self._cond = threading.Condition()
        self._running = False
        self._thread_id: Optional[int] = None

    @property
    def is_running(self) -> bool:
        return self._running

    def in_loop_thread(self) -> bool:
        """True when called from the thread currently running the loop."""
        return self._thread_id == threading.get_ident()

    # -------------------------------------------------------------------------
    # Scheduling
    # -------------------------------------------------------------------------

    def call_soon_threadsafe(self, callback: Callable[..., Any], *args: Any) -> None:
        """Queue a callback to run on the loop thread. Safe from any thread."""
        with self._cond:
            self._ready.append((callback, args))
            self._cond.notify()

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        """Run callback once, delay seconds from now."""
        handle = TimerHandle(self.clock.monotonic() + max(0.0, delay), callback, args)
        self._push_timer(handle)
        return handle

    def call_every(self, interval: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        """Run callback every interval seconds; the first run is one interval from now."""
        if interval <= 0:
            raise ValueError("interval must be positive")
        handle = TimerHandle(self.clock.monotonic() + interval, callback, args, interval=interval)
        self._push_timer(handle)
        return handle

    def _push_timer(self, handle: TimerHandle) -> None:
        with self._cond:
            heapq.heappush(self._timers, (handle.deadline, next(self._seq), handle))
            self._cond.notify()

    # -------------------------------------------------------------------------
    # Running
    # -------------------------------------------------------------------------

    def run_pending(self) -> int:
        """
        Run posted callbacks, then every timer that is due.

        Returns:
            Number of callbacks executed.
        """
        executed = 0

        with self._cond:
            ready = list(self._ready)
            self._ready.clear()
        for callback, args in ready:
            self._invoke(callback, args)
            executed += 1

        now = self.clock.monotonic()
        while True:
            with self._cond:
                if not self._timers or self._timers[0][0] > now:
                    break
                _, _, handle = heapq.heappop(self._timers)
            if handle.cancelled:
                continue
            if handle.periodic:
                handle.deadline += handle.interval
                self._push_timer(handle)
            self._invoke(handle._run, ())
            executed += 1

        return executed

    def _invoke(self, callback: Callable[..., Any], args: Tuple[Any, ...]) -> None:
        try:
            callback(*args)
        except Exception as e:
            logging.warning(f"Control loop callback error in {getattr(callback, '__name__', callback)}: {e}")

    def _next_wait(self) -> float:
        """Seconds until the next timer (bounded by max_idle_wait). Call with lock held."""
        if self._ready:
            return 0.0
        wait = self._max_idle_wait
        while self._timers and self._timers[0][2].cancelled:
            heapq.heappop(self._timers)
        if self._timers:
            wait = min(wait, max(0.0, self._timers[0][0] - self.clock.monotonic()))
        return wait

    def run_forever(self) -> None:
        """Run the loop on the calling thread until stop() is called."""
        self._running = True
        self._thread_id = threading.get_ident()
        logging.info("Control loop started")
        try:
            while self._running:
                self.run_pending()
                with self._cond:
                    if not self._running:
                        break
                    wait = self._next_wait()
                    if wait > 0:
                        self._cond.wait(timeout=wait)
        finally:
            self._running = False
            self._thread_id = None
            logging.info("Control loop stopped")

    def stop(self) -> None:
        """Ask run_forever() to return. Safe from any thread; idempotent."""
        with self._cond:
            self._running = False
            self._cond.notify_all()
