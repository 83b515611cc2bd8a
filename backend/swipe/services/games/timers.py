import itertools
import logging
import threading
import time
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)

_seq = itertools.count()


class TimerHandle:
    """Cancellation token for one scheduled callback."""

    def __init__(self, category: str, delay: float, deadline: float, callback: Callable[[], None]):
        self.category = category
        self.delay = delay
        self.deadline = deadline
        self.callback = callback
        self.cancelled = False
        self.fired = False
        self.seq = next(_seq)

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.fired)

    def cancel(self) -> None:
        # Safe to call repeatedly, and after the timer fired.
        self.cancelled = True

    def __repr__(self):
        state = 'fired' if self.fired else 'cancelled' if self.cancelled else 'pending'
        return f"<TimerHandle {self.category} delay={self.delay:.2f}s {state}>"


class TimerScheduler:
    """One-shot timers keyed by category.

    Scheduling a category cancels whatever was pending under it, so there is
    at most one outstanding handle per category. Callbacks run while holding
    ``lock``, the same lock the owner takes for direct input, which keeps all
    state mutation on a single serialized path.
    """

    def __init__(self, lock=None, spawn=None, sleep=None, clock=time.monotonic):
        self.lock = lock or threading.RLock()
        self._spawn = spawn or _spawn_thread
        self._sleep = sleep or time.sleep
        self._clock = clock
        self._handles: Dict[str, TimerHandle] = {}

    def now(self) -> float:
        return self._clock()

    def schedule(self, category: str, delay: float, callback: Callable[[], None]) -> TimerHandle:
        with self.lock:
            self.cancel(category)
            handle = TimerHandle(category, delay, self.now() + delay, callback)
            self._handles[category] = handle
            logger.debug(f"[timer-set] category={category} delay={delay:.3f}s")
            self._start(handle)
            return handle

    def cancel(self, category: str) -> None:
        with self.lock:
            handle = self._handles.pop(category, None)
            if handle is not None and handle.active:
                handle.cancel()
                logger.debug(f"[timer-cancel] category={category}")

    def cancel_all(self) -> None:
        with self.lock:
            for category in list(self._handles):
                self.cancel(category)

    def pending(self, category: str) -> Optional[TimerHandle]:
        handle = self._handles.get(category)
        return handle if handle is not None and handle.active else None

    def _start(self, handle: TimerHandle) -> None:
        self._spawn(self._run, handle)

    def _run(self, handle: TimerHandle) -> None:
        self._sleep(handle.delay)
        self._fire(handle)

    def _fire(self, handle: TimerHandle) -> None:
        with self.lock:
            if handle.cancelled:
                logger.debug(f"[timer-abort] category={handle.category} cancelled before firing")
                return
            handle.fired = True
            if self._handles.get(handle.category) is handle:
                del self._handles[handle.category]
            handle.callback()


class ManualTimerScheduler(TimerScheduler):
    """Virtual-clock scheduler: nothing fires until ``advance()`` is called."""

    def __init__(self, lock=None):
        super().__init__(lock=lock)
        self._now = 0.0

    def now(self) -> float:
        return self._now

    def _start(self, handle: TimerHandle) -> None:
        pass

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing due timers in deadline order.

        Timers scheduled by a firing callback also fire if they fall inside
        the window.
        """
        target = self._now + seconds
        while True:
            with self.lock:
                due = [h for h in self._handles.values() if h.active and h.deadline <= target + 1e-9]
                if not due:
                    break
                handle = min(due, key=lambda h: (h.deadline, h.seq))
                self._now = max(self._now, handle.deadline)
                self._fire(handle)
        self._now = target


def _spawn_thread(target, *args):
    worker = threading.Thread(target=target, args=args, daemon=True)
    worker.start()
    return worker
