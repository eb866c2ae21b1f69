from typing import Optional
from pydantic import ValidationError as SchemaValidationError
from membership_portal.api.schemas import FormSnapshot
from membership_portal.core.errors import StorageError
from membership_portal.core.logger import get_logger

logger = get_logger(__name__)

STORAGE_KEY = "form_autosave_data"


class PersistenceStore:
    """
    Keeps exactly one serialized FormSnapshot under a well-known storage key.

    Only one in-progress form is tracked at a time: saving a snapshot for one
    form replaces whatever was stored for another. Storage failures are
    logged and treated as no-ops so the form stays usable.
    """

    def __init__(self, storage, key: str = STORAGE_KEY):
        self._storage = storage
        self.key = key

    def save(self, snapshot: FormSnapshot) -> bool:
        # Attachments mid-upload are never durable
        durable = snapshot.model_copy(update={
            "attachments": {slot: ref for slot, ref in snapshot.attachments.items() if ref.is_terminal}
        })
        try:
            self._storage.set_item(self.key, durable.to_json())
        except StorageError as e:
            logger.warning(f"Autosave: local save skipped: {e}")
            return False
        logger.debug(f"Autosave: snapshot for '{snapshot.form_id}' saved locally ({len(snapshot.fields)} fields).")
        return True

    def load(self, form_id: str) -> Optional[FormSnapshot]:
        try:
            raw = self._storage.get_item(self.key)
        except StorageError as e:
            logger.warning(f"Autosave: could not read saved snapshot: {e}")
            return None
        if not raw:
            return None

        try:
            snapshot = FormSnapshot.model_validate_json(raw)
        except SchemaValidationError as e:
            logger.warning(f"Autosave: discarding corrupt snapshot: {e.error_count()} error(s)")
            return None

        if snapshot.form_id != form_id:
            logger.info(f"Autosave: stored snapshot belongs to '{snapshot.form_id}', not '{form_id}'.")
            return None
        return snapshot

    def has_snapshot(self) -> bool:
        try:
            return bool(self._storage.get_item(self.key))
        except StorageError as e:
            logger.warning(f"Autosave: could not read saved snapshot: {e}")
            return False

    def clear(self):
        try:
            self._storage.remove_item(self.key)
            logger.info("Autosave: saved snapshot cleared.")
        except StorageError as e:
            logger.warning(f"Autosave: could not clear saved snapshot: {e}")
