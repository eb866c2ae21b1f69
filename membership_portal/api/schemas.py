from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Any, Dict, Optional
from enum import Enum
import hashlib
import json


class FormId(str, Enum):
    REGISTRATION = "registration"
    UPDATE = "update"


class FileSlot(str, Enum):
    ID_FRONT = "aadharFront"
    ID_BACK = "aadharBack"
    PROFILE_PHOTO = "profilePhoto"
    CERTIFICATE = "casteCertificate"


class AttachmentStatus(str, Enum):
    UNSET = "unset"
    UPLOADING = "uploading"
    UPLOADED = "uploaded"
    FAILED = "failed"


TERMINAL_STATUSES = (AttachmentStatus.UPLOADED, AttachmentStatus.FAILED)


class FileAttachmentRef(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    slot_name: FileSlot = Field(alias="slotName")
    status: AttachmentStatus = AttachmentStatus.UNSET
    remote_reference: Optional[str] = Field(default=None, alias="remoteReference")
    file_name: Optional[str] = Field(default=None, alias="fileName")

    @model_validator(mode="after")
    def _uploaded_needs_reference(self):
        if self.status == AttachmentStatus.UPLOADED and not self.remote_reference:
            raise ValueError(f"Attachment '{self.slot_name.value}' is uploaded but has no remote reference")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class FormSnapshot(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    form_id: str = Field(alias="formId")
    saved_at: int = Field(alias="savedAt")  # epoch millis
    fields: Dict[str, str] = Field(default_factory=dict)
    attachments: Dict[str, FileAttachmentRef] = Field(default_factory=dict)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    def fingerprint(self) -> str:
        """Digest of the content only; two captures of the same input share it whatever their savedAt."""
        content = {
            "formId": self.form_id,
            "fields": self.fields,
            "attachments": {slot: ref.model_dump(mode="json", by_alias=True) for slot, ref in self.attachments.items()},
        }
        return hashlib.sha256(json.dumps(content, sort_keys=True).encode("utf-8")).hexdigest()

    def to_form_data(self) -> Dict[str, Any]:
        """Flattened payload sent with the `autoSaveForm` action."""
        data: Dict[str, Any] = dict(self.fields)
        for slot, ref in self.attachments.items():
            if ref.status == AttachmentStatus.UPLOADED:
                data[slot] = ref.remote_reference
        data["_timestamp"] = self.saved_at
        data["_formId"] = self.form_id
        return data


class ApiEnvelope(BaseModel):
    """The `{success, message?}` wrapper every endpoint action answers with."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    success: bool = False
    message: Optional[str] = None
    error_code: Optional[str] = Field(default=None, alias="errorCode")


class SubmissionResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    application_id: Optional[str] = Field(default=None, alias="applicationId")
    message: Optional[str] = None
