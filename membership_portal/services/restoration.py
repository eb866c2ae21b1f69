from enum import Enum
from typing import Iterable
from membership_portal.api.schemas import AttachmentStatus, FileSlot
from membership_portal.core.logger import get_logger
from membership_portal.services.file_attachments import PREVIOUS_UPLOAD_LABEL
from membership_portal.services.notifier import NO_SESSION, RESTORED_SESSION
from membership_portal.utils.form_elements import TEXT_LIKE_TYPES, LiveForm

logger = get_logger(__name__)

DERIVED_FIELD_IDS = frozenset(["declarationSignature"] + [f"{slot.value}Name" for slot in FileSlot])


class RestoreOutcome(str, Enum):
    RESTORED = "restored"
    NOTHING_TO_RESTORE = "nothing_to_restore"
    SKIPPED_CONFLICT = "skipped_conflict"


class RestorationEngine:
    """
    Applies a saved snapshot to a freshly loaded form.

    Restoring never overwrites active input: if the user already typed into
    any tracked text field, the form is left untouched.
    """

    def __init__(self, store, indicator=None, attachments=None, derived_ids: Iterable[str] = DERIVED_FIELD_IDS):
        self._store = store
        self._indicator = indicator
        self._attachments = attachments
        self.derived_ids = frozenset(derived_ids)

    def has_user_content(self, form: LiveForm) -> bool:
        for element in form:
            if element.type not in TEXT_LIKE_TYPES:
                continue
            if element.id in self.derived_ids:
                continue
            if element.value.strip():
                return True
        return False

    def restore(self, form: LiveForm) -> RestoreOutcome:
        snapshot = self._store.load(form.form_id)
        if snapshot is None:
            self._notify(NO_SESSION)
            return RestoreOutcome.NOTHING_TO_RESTORE

        if self.has_user_content(form):
            logger.info(f"Autosave: '{form.form_id}' already has input, saved session not restored.")
            return RestoreOutcome.SKIPPED_CONFLICT

        applied = 0
        for element in form:
            key = element.key
            if not key or element.is_file or key not in snapshot.fields:
                continue
            value = snapshot.fields[key]
            if element.is_checkable:
                element.checked = value == element.value
            else:
                element.value = value or ""
            applied += 1

        for slot, ref in snapshot.attachments.items():
            if ref.status != AttachmentStatus.UPLOADED:
                continue
            # Native file inputs cannot be filled programmatically; only the label is restored
            form.slot_labels[slot] = PREVIOUS_UPLOAD_LABEL
            if self._attachments is not None:
                self._attachments.adopt(ref)

        logger.info(f"Autosave: restored {applied} element(s) of '{form.form_id}' from {snapshot.saved_at}.")
        self._notify(RESTORED_SESSION)
        return RestoreOutcome.RESTORED

    def _notify(self, message: str):
        if self._indicator is not None:
            self._indicator.info(message)
