import heapq
import itertools
import threading
import time
from typing import Callable, List, Optional, Tuple
from membership_portal.core.logger import get_logger

logger = get_logger(__name__)


class TimerHandle:
    def __init__(self, when: float, callback: Callable, args: tuple):
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def __lt__(self, other: "TimerHandle") -> bool:
        return self.when < other.when


class _BaseScheduler:
    def __init__(self):
        self._queue: List[Tuple[float, int, TimerHandle]] = []
        self._counter = itertools.count()

    def time(self) -> float:
        raise NotImplementedError

    def now_ms(self) -> int:
        return int(self.time() * 1000)

    def call_soon(self, callback: Callable, *args) -> TimerHandle:
        return self.call_later(0, callback, *args)

    def call_later(self, delay: float, callback: Callable, *args) -> TimerHandle:
        handle = TimerHandle(self.time() + max(delay, 0), callback, args)
        self._push(handle)
        return handle

    def call_io(self, callback: Callable, *args) -> TimerHandle:
        """Runs blocking work (network calls) as soon as possible, away from timer callbacks."""
        return self.call_soon(callback, *args)

    def _push(self, handle: TimerHandle):
        # The counter keeps FIFO order between handles due at the same instant
        heapq.heappush(self._queue, (handle.when, next(self._counter), handle))

    def _run(self, handle: TimerHandle):
        if handle.cancelled:
            return
        try:
            handle.callback(*handle.args)
        except Exception as e:
            logger.exception(f"Scheduled callback {getattr(handle.callback, '__name__', handle.callback)} failed: {e}")


class TimerScheduler(_BaseScheduler):
    """
    Runs delayed callbacks one at a time on a single background thread,
    so scheduled work never overlaps. Blocking I/O handed to `call_io()`
    gets its own daemon thread and never holds up the timers.
    """

    def __init__(self):
        super().__init__()
        self._cond = threading.Condition()
        self._stop_event = threading.Event()
        self._thread = None

    def time(self) -> float:
        return time.time()

    def start(self):
        """Starts the worker thread"""
        if self._thread is None or not self._thread.is_alive():
            self._stop_event.clear()
            self._thread = threading.Thread(target=self._run_loop, daemon=True)
            self._thread.start()
            logger.debug("TimerScheduler started.")

    def stop(self):
        """Stops the worker thread. Pending callbacks are dropped."""
        self._stop_event.set()
        with self._cond:
            self._cond.notify_all()
        if self._thread:
            self._thread.join(timeout=2)
            logger.debug("TimerScheduler stopped.")

    def call_later(self, delay: float, callback: Callable, *args) -> TimerHandle:
        with self._cond:
            handle = super().call_later(delay, callback, *args)
            self._cond.notify()
        self.start()
        return handle

    def call_io(self, callback: Callable, *args) -> TimerHandle:
        handle = TimerHandle(self.time(), callback, args)
        threading.Thread(target=self._run, args=(handle,), daemon=True).start()
        return handle

    def _run_loop(self):
        while not self._stop_event.is_set():
            with self._cond:
                handle = self._next_due()
            if handle is not None:
                self._run(handle)

    def _next_due(self) -> Optional[TimerHandle]:
        # Caller holds self._cond
        while not self._stop_event.is_set():
            while self._queue and self._queue[0][2].cancelled:
                heapq.heappop(self._queue)
            if not self._queue:
                self._cond.wait()
                continue
            wait = self._queue[0][0] - self.time()
            if wait <= 0:
                return heapq.heappop(self._queue)[2]
            self._cond.wait(timeout=wait)
        return None


class ManualScheduler(_BaseScheduler):
    """
    Scheduler driven by an explicit virtual clock. Callbacks only run when
    `advance()` or `run_pending()` is called, on the caller's thread.
    """

    def __init__(self, start: float = None):
        super().__init__()
        self._now = start if start is not None else time.time()

    def time(self) -> float:
        return self._now

    @property
    def pending(self) -> int:
        return sum(1 for _, _, h in self._queue if not h.cancelled)

    def run_pending(self):
        """Runs every callback already due, including ones they schedule for now."""
        self.advance(0)

    def advance(self, seconds: float):
        target = self._now + seconds
        while self._queue and self._queue[0][0] <= target:
            _, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = max(self._now, handle.when)
            self._run(handle)
        self._now = target
