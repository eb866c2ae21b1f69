from typing import Dict, List, Optional
from membership_portal.api.schemas import AttachmentStatus, FileAttachmentRef, FileSlot
from membership_portal.core.errors import FileValidationError, NetworkError, RemoteError, TokenError
from membership_portal.core.logger import get_logger
from membership_portal.utils.form_definitions import NO_FILE_LABEL
from membership_portal.utils.form_elements import LiveForm

logger = get_logger(__name__)

IMAGE_TYPES = ("image/jpeg", "image/png", "image/gif")
DOCUMENT_TYPES = ("application/pdf",) + IMAGE_TYPES

SLOT_CONTENT_TYPES = {
    FileSlot.ID_FRONT: DOCUMENT_TYPES,
    FileSlot.ID_BACK: DOCUMENT_TYPES,
    FileSlot.PROFILE_PHOTO: IMAGE_TYPES,
    FileSlot.CERTIFICATE: DOCUMENT_TYPES,
}

UPLOADING_LABEL = "Uploading..."
FAILED_LABEL = "Upload failed - try again"
PREVIOUS_UPLOAD_LABEL = "Previously uploaded"


class FileAttachmentTracker:
    """Tracks the upload state of the fixed file slots of one live form."""

    def __init__(self, form: LiveForm, api, tokens, max_bytes: int = 5 * 1024 * 1024):
        self._form = form
        self._api = api
        self._tokens = tokens
        self.max_bytes = max_bytes
        self._refs: Dict[str, FileAttachmentRef] = {}

    def get(self, slot: str) -> Optional[FileAttachmentRef]:
        return self._refs.get(FileSlot(slot).value)

    def refs(self) -> List[FileAttachmentRef]:
        return list(self._refs.values())

    def terminal_refs(self) -> List[FileAttachmentRef]:
        return [ref for ref in self._refs.values() if ref.is_terminal]

    def uploaded_references(self) -> Dict[str, str]:
        return {slot: ref.remote_reference for slot, ref in self._refs.items()
                if ref.status == AttachmentStatus.UPLOADED}

    def validate(self, slot: FileSlot, file_name: str, content: bytes, content_type: str):
        if len(content) > self.max_bytes:
            raise FileValidationError(
                f"File too large (max {self.max_bytes // (1024 * 1024)}MB)", {slot.value: file_name})
        if content_type not in SLOT_CONTENT_TYPES[slot]:
            raise FileValidationError("Invalid file type", {slot.value: content_type})

    def select(self, slot: str, file_name: str, content: bytes, content_type: str) -> FileAttachmentRef:
        """Validates and uploads a newly selected file. Upload failures end in the `failed` state."""
        try:
            slot = FileSlot(slot)
        except ValueError:
            raise FileValidationError(f"Unknown upload slot: {slot}", {str(slot): "unknown slot"})

        try:
            self.validate(slot, file_name, content, content_type)
        except FileValidationError as e:
            self._set_label(slot, str(e))
            self._refs.pop(slot.value, None)
            raise

        self._refs[slot.value] = FileAttachmentRef(slot_name=slot, status=AttachmentStatus.UPLOADING, file_name=file_name)
        self._set_label(slot, UPLOADING_LABEL)

        try:
            token = self._tokens.get()
            file_url = self._api.upload_file(file_name, content, content_type, token)
        except (NetworkError, RemoteError, TokenError) as e:
            if isinstance(e, TokenError):
                self._tokens.invalidate()
            logger.error(f"Upload of {file_name} for {slot.value} failed: {e}")
            ref = FileAttachmentRef(slot_name=slot, status=AttachmentStatus.FAILED, file_name=file_name)
            self._refs[slot.value] = ref
            self._set_label(slot, FAILED_LABEL)
            return ref

        ref = FileAttachmentRef(slot_name=slot, status=AttachmentStatus.UPLOADED,
                                remote_reference=file_url, file_name=file_name)
        self._refs[slot.value] = ref
        self._set_label(slot, file_name)
        logger.info(f"Uploaded {file_name} for {slot.value}.")
        return ref

    def adopt(self, ref: FileAttachmentRef):
        """Takes over a reference restored from a previous session."""
        if ref.is_terminal:
            self._refs[ref.slot_name.value] = ref

    def clear(self, slot: str):
        slot = FileSlot(slot)
        self._refs.pop(slot.value, None)
        self._set_label(slot, NO_FILE_LABEL)

    def reset(self):
        self._refs.clear()
        for slot in list(self._form.slot_labels):
            self._form.slot_labels[slot] = NO_FILE_LABEL

    def _set_label(self, slot: FileSlot, text: str):
        self._form.slot_labels[slot.value] = text
