import threading
from dataclasses import dataclass
from typing import Callable, Optional
from membership_portal.api.schemas import FormSnapshot
from membership_portal.core.errors import NetworkError, RemoteError, TokenError
from membership_portal.core.logger import get_logger

logger = get_logger(__name__)


@dataclass
class SyncState:
    enabled: bool = True
    last_synced_at: Optional[int] = None        # epoch millis
    last_synced_saved_at: Optional[int] = None  # savedAt of the last snapshot pushed
    last_synced_fingerprint: Optional[str] = None
    pending_retry_count: int = 0
    offline: bool = False


class RemoteSyncClient:
    """
    Pushes snapshots to the `autoSaveForm` action.

    At most one push is in flight; calls arriving meanwhile are dropped since
    the next debounced or interval-triggered call carries newer state anyway.
    Failed pushes are retried after a fixed delay until `max_retries`
    consecutive failures, after which `on_offline` is called once and local
    saving carries on alone. A retry is dropped once a snapshot at least as
    new has been synced.

    Pushes go through `scheduler.call_io()` so a slow request never holds up
    the debounce timer.
    """

    def __init__(self, api, tokens, scheduler, state: SyncState, interval: float = 30.0,
                 max_retries: int = 3, retry_delay: float = 5.0, on_offline: Optional[Callable[[], None]] = None):
        self._api = api
        self._tokens = tokens
        self._scheduler = scheduler
        self._state = state
        self.interval = interval
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.on_offline = on_offline
        self._in_flight = False
        self._lock = threading.Lock()

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def maybe_sync(self, snapshot: FormSnapshot, force: bool = False) -> bool:
        """Dispatches a push when forced or when the sync interval has elapsed. Returns True if dispatched."""
        if not self._state.enabled:
            return False
        with self._lock:
            if self._in_flight:
                logger.debug("Autosave: sync already in flight, dropping request.")
                return False
            if not force and not self._interval_elapsed():
                return False
            self._in_flight = True
        self._scheduler.call_io(self._push, snapshot)
        return True

    def _interval_elapsed(self) -> bool:
        last = self._state.last_synced_at
        return last is None or self._scheduler.now_ms() - last >= self.interval * 1000

    def _retry(self, snapshot: FormSnapshot):
        if not self._state.enabled:
            return
        last_saved_at = self._state.last_synced_saved_at
        if last_saved_at is not None and snapshot.saved_at <= last_saved_at:
            logger.info(f"Autosave: retry of {snapshot.saved_at} dropped, {last_saved_at} already synced.")
            return
        with self._lock:
            if self._in_flight:
                return
            self._in_flight = True
        logger.info(f"Autosave: retrying sync (attempt {self._state.pending_retry_count + 1}).")
        self._scheduler.call_io(self._push, snapshot)

    def _token(self) -> Optional[str]:
        try:
            return self._tokens.get()
        except TokenError as e:
            # Token trouble does not consume a retry
            logger.warning(f"Autosave: sync skipped, no CSRF token: {e}")
            return None

    def _push(self, snapshot: FormSnapshot):
        try:
            if not self._state.enabled:
                return
            token = self._token()
            if token is None:
                return
            try:
                try:
                    self._api.auto_save_form(snapshot.to_form_data(), token)
                except TokenError:
                    logger.info("Autosave: CSRF token rejected, refreshing once.")
                    self._tokens.invalidate()
                    token = self._token()
                    if token is None:
                        return
                    self._api.auto_save_form(snapshot.to_form_data(), token)
            except (NetworkError, RemoteError, TokenError) as e:
                self._record_failure(snapshot, e)
                return
            self._record_success(snapshot)
        finally:
            with self._lock:
                self._in_flight = False

    def _record_success(self, snapshot: FormSnapshot):
        self._state.last_synced_at = self._scheduler.now_ms()
        self._state.last_synced_saved_at = snapshot.saved_at
        self._state.last_synced_fingerprint = snapshot.fingerprint()
        self._state.pending_retry_count = 0
        if self._state.offline:
            logger.info("Autosave: connectivity restored. Status: ONLINE")
        self._state.offline = False
        logger.info(f"Autosave: snapshot {snapshot.saved_at} synced to server.")

    def _record_failure(self, snapshot: FormSnapshot, error: Exception):
        self._state.pending_retry_count = min(self._state.pending_retry_count + 1, self.max_retries)
        count = self._state.pending_retry_count
        if count < self.max_retries:
            logger.warning(f"Autosave: sync failed ({count}/{self.max_retries}): {error}. Retrying in {self.retry_delay}s.")
            self._scheduler.call_later(self.retry_delay, self._retry, snapshot)
            return

        logger.error(f"Autosave: sync failed {count} times, working offline: {error}")
        if not self._state.offline:
            self._state.offline = True
            if self.on_offline:
                try:
                    self.on_offline()
                except Exception as e:
                    logger.error(f"Autosave: offline callback error: {e}")
