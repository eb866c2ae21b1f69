"""
Lifecycle controller for form autosave.

Page events (load, field activity, file selection, unload, submission) are
plain method calls, so the controller runs headless and every collaborator
can be swapped for an in-memory fake.

States: IDLE -> TRACKING -> SUBMITTED, and IDLE|TRACKING -> DISABLED.
SUBMITTED and DISABLED are terminal for the controller instance.
"""
import threading
from enum import Enum
from typing import Callable, Optional
from membership_portal.api.portal_client import PortalApiClient
from membership_portal.api.schemas import FileAttachmentRef, FormSnapshot, SubmissionResult
from membership_portal.api.token_cache import TokenCache
from membership_portal.core.config import AutoSaveConfig, Settings, settings
from membership_portal.core.errors import FileValidationError, ValidationError
from membership_portal.core.logger import get_logger
from membership_portal.db.session import init_db
from membership_portal.db.storage import SqlStorage
from membership_portal.services.change_debouncer import ChangeDebouncer
from membership_portal.services.file_attachments import FileAttachmentTracker
from membership_portal.services.notifier import SAVED_LOCALLY, WORKING_OFFLINE, StatusIndicator
from membership_portal.services.persistence_store import PersistenceStore
from membership_portal.services.remote_sync import RemoteSyncClient, SyncState
from membership_portal.services.restoration import RestorationEngine, RestoreOutcome
from membership_portal.services.scheduler import TimerScheduler
from membership_portal.services.snapshot_extractor import build_snapshot, extract_fields
from membership_portal.services.submission_service import SubmissionService
from membership_portal.utils.form_elements import LiveForm

logger = get_logger(__name__)

LEAVE_PROMPT = "You have unsaved changes. Are you sure you want to leave?"


class ControllerState(str, Enum):
    IDLE = "idle"
    TRACKING = "tracking"
    SUBMITTED = "submitted"
    DISABLED = "disabled"


TERMINAL_STATES = (ControllerState.SUBMITTED, ControllerState.DISABLED)


class AutoSaveController:
    def __init__(self, form: LiveForm, capture: Callable[[], FormSnapshot], store: PersistenceStore,
                 sync_client: RemoteSyncClient, debouncer: ChangeDebouncer, restorer: RestorationEngine,
                 attachments: FileAttachmentTracker, submission: SubmissionService,
                 indicator: StatusIndicator, state: SyncState):
        self.form = form
        self._capture = capture
        self._store = store
        self._sync = sync_client
        self._debouncer = debouncer
        self._restorer = restorer
        self._attachments = attachments
        self._submission = submission
        self.indicator = indicator
        self.sync_state = state
        self.status = ControllerState.IDLE
        self._page_loaded = False
        self._lock = threading.Lock()

        # Nothing is written until enable()
        self.sync_state.enabled = False
        self._debouncer.on_saved = self._on_snapshot_saved
        self._sync.on_offline = self._on_offline

    @property
    def is_tracking(self) -> bool:
        return self.status == ControllerState.TRACKING

    # Page lifecycle

    def on_page_load(self) -> Optional[RestoreOutcome]:
        """Restores the previous session once, then starts tracking."""
        if self._page_loaded or self.status in TERMINAL_STATES:
            return None
        self._page_loaded = True
        outcome = self._restorer.restore(self.form)
        self.enable()
        return outcome

    def on_field_activity(self, key: str = None):
        if not self.is_tracking:
            return
        self._debouncer.on_field_activity()
        self._sync.maybe_sync(self._capture(), force=False)

    def on_unload(self, event=None) -> bool:
        """
        Flushes pending input. Returns True when unsynced changes remain, in
        which case a forced sync is dispatched and the leave prompt requested.
        """
        if not self.is_tracking:
            return False
        snapshot = self._debouncer.flush_now()
        if not self.has_unsynced_changes():
            return False
        if snapshot is not None:
            self._sync.maybe_sync(snapshot, force=True)
        self._request_leave_confirmation(event)
        return True

    # Explicit controls

    def enable(self) -> bool:
        with self._lock:
            if self.status == ControllerState.TRACKING:
                return True
            if self.status in TERMINAL_STATES:
                logger.warning(f"Autosave: cannot enable '{self.form.form_id}' once {self.status.value}.")
                return False
            self.status = ControllerState.TRACKING
            self.sync_state.enabled = True
        logger.info(f"Autosave: tracking '{self.form.form_id}'.")
        return True

    def disable(self):
        """Explicit opt-out: stops autosave and removes the saved snapshot."""
        with self._lock:
            if self.status in TERMINAL_STATES:
                return
            self.status = ControllerState.DISABLED
            self.sync_state.enabled = False
        self._debouncer.cancel()
        self._store.clear()
        logger.info(f"Autosave: disabled for '{self.form.form_id}'.")

    def save_now(self) -> Optional[FormSnapshot]:
        if not self.is_tracking:
            return None
        snapshot = self._debouncer.flush_now()
        if snapshot is not None:
            self._sync.maybe_sync(snapshot, force=True)
        return snapshot

    def discard_saved_session(self):
        """The user declined to restore: the stored snapshot is dropped."""
        self._store.clear()

    def has_unsynced_changes(self) -> bool:
        snapshot = self._store.load(self.form.form_id)
        if snapshot is None:
            return False
        return snapshot.fingerprint() != self.sync_state.last_synced_fingerprint

    # Files

    def on_file_selected(self, slot: str, file_name: str, content: bytes, content_type: str) -> Optional[FileAttachmentRef]:
        if not self.is_tracking:
            return None
        try:
            ref = self._attachments.select(slot, file_name, content, content_type)
        except FileValidationError as e:
            self.indicator.error(str(e))
            return None
        self._debouncer.on_field_activity()
        return ref

    def on_file_cleared(self, slot: str):
        self._attachments.clear(slot)
        if self.is_tracking:
            self._debouncer.on_field_activity()

    def reset_form(self):
        for element in self.form:
            if element.is_checkable:
                element.checked = False
            elif not element.is_file and element.key:
                element.value = ""
        self._attachments.reset()
        if self.is_tracking:
            self._debouncer.on_field_activity()

    # Submission

    def submit(self) -> SubmissionResult:
        """
        Flushes, then submits the form. On success the saved snapshot is
        cleared and autosave stops for good. Errors propagate to the caller.
        """
        if self.status == ControllerState.SUBMITTED:
            raise ValidationError("This form has already been submitted.")
        self._debouncer.flush_now()
        result = self._submission.submit(
            self.form.form_id, extract_fields(self.form), self._attachments.uploaded_references())
        self.on_submission_succeeded()
        return result

    def on_submission_succeeded(self):
        with self._lock:
            self.status = ControllerState.SUBMITTED
            self.sync_state.enabled = False
        self._debouncer.cancel()
        self._store.clear()
        logger.info(f"Autosave: '{self.form.form_id}' submitted, saved data cleared.")

    # Callbacks

    def _on_snapshot_saved(self, snapshot: FormSnapshot, saved: bool):
        if saved:
            self.indicator.info(SAVED_LOCALLY)
        self._sync.maybe_sync(snapshot, force=False)

    def _on_offline(self):
        self.indicator.error(WORKING_OFFLINE)

    def _request_leave_confirmation(self, event):
        confirm = getattr(event, "request_confirmation", None)
        if not callable(confirm):
            return
        try:
            confirm(LEAVE_PROMPT)
        except Exception as e:
            logger.warning(f"Autosave: leave confirmation unavailable: {e}")


def create_autosave_controller(form: LiveForm, api: PortalApiClient = None, storage=None, scheduler=None,
                               config: AutoSaveConfig = None, source: Settings = None,
                               indicator: StatusIndicator = None) -> AutoSaveController:
    """Builds a controller with default collaborators for anything not supplied."""
    source = source or settings
    if api is None:
        api = PortalApiClient(config.endpoint_url if config else source.PORTAL_ENDPOINT_URL,
                              source.REQUEST_TIMEOUT_SECONDS)
    config = config or AutoSaveConfig.from_settings(api.get_csrf_token, source)
    scheduler = scheduler or TimerScheduler()
    if storage is None:
        init_db()
        storage = SqlStorage(quota_bytes=source.STORAGE_QUOTA_BYTES)

    state = SyncState(enabled=False)
    tokens = TokenCache(config.token_provider, expiry_seconds=source.CSRF_TOKEN_EXPIRY_SECONDS)
    store = PersistenceStore(storage)
    indicator = indicator or StatusIndicator(scheduler)
    attachments = FileAttachmentTracker(form, api, tokens, max_bytes=source.MAX_UPLOAD_BYTES)

    def capture() -> FormSnapshot:
        return build_snapshot(form, attachments.terminal_refs(), scheduler.now_ms())

    sync_client = RemoteSyncClient(
        api, tokens, scheduler, state,
        interval=source.AUTOSAVE_SYNC_INTERVAL_SECONDS,
        max_retries=source.AUTOSAVE_MAX_RETRIES,
        retry_delay=source.AUTOSAVE_RETRY_DELAY_SECONDS,
    )
    debouncer = ChangeDebouncer(capture, store, scheduler, state, quiet_window=source.AUTOSAVE_DEBOUNCE_SECONDS)
    restorer = RestorationEngine(store, indicator, attachments)
    submission = SubmissionService(api, tokens)

    return AutoSaveController(form, capture, store, sync_client, debouncer, restorer,
                              attachments, submission, indicator, state)
