import threading
from typing import Callable, Optional
from membership_portal.api.schemas import FormSnapshot
from membership_portal.core.logger import get_logger

logger = get_logger(__name__)


class ChangeDebouncer:
    """
    Trailing-edge debounce of field activity into local saves.

    A burst of activity produces exactly one save, `quiet_window` seconds
    after the last call. `flush_now()` cancels the timer and saves at once,
    capturing the form as it is at call time.
    """

    def __init__(self, capture: Callable[[], FormSnapshot], store, scheduler, state,
                 quiet_window: float = 2.0, on_saved: Optional[Callable[[FormSnapshot, bool], None]] = None):
        self._capture = capture
        self._store = store
        self._scheduler = scheduler
        self._state = state
        self.quiet_window = quiet_window
        self.on_saved = on_saved
        self._handle = None
        self._lock = threading.Lock()

    @property
    def has_pending(self) -> bool:
        return self._handle is not None

    def on_field_activity(self):
        if not self._state.enabled:
            return
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
            self._handle = self._scheduler.call_later(self.quiet_window, self._fire)

    def flush_now(self) -> Optional[FormSnapshot]:
        if not self._state.enabled:
            return None
        self.cancel()
        return self._save()

    def cancel(self):
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
                self._handle = None

    def _fire(self):
        with self._lock:
            self._handle = None
        # Autosave may have been switched off while the timer was pending
        if not self._state.enabled:
            return
        self._save()

    def _save(self) -> FormSnapshot:
        snapshot = self._capture()
        saved = self._store.save(snapshot)
        if self.on_saved:
            try:
                self.on_saved(snapshot, saved)
            except Exception as e:
                logger.error(f"Autosave: on_saved callback error: {e}")
        return snapshot
