from typing import Any, Dict
from membership_portal.api.schemas import FileSlot, FormId, SubmissionResult
from membership_portal.core.errors import TokenError, ValidationError
from membership_portal.core.logger import get_logger

logger = get_logger(__name__)

REQUIRED_DOCUMENTS = {
    FormId.REGISTRATION.value: (FileSlot.ID_FRONT, FileSlot.ID_BACK, FileSlot.PROFILE_PHOTO),
    FormId.UPDATE.value: (),
}


class SubmissionService:
    """Final submission of a registration or an update form."""

    def __init__(self, api, tokens):
        self._api = api
        self._tokens = tokens

    def build_payload(self, fields: Dict[str, str], uploaded: Dict[str, str]) -> Dict[str, Any]:
        payload: Dict[str, Any] = dict(fields)
        for slot, url in uploaded.items():
            payload[f"{slot}Url"] = url
        return payload

    def validate(self, form_id: str, uploaded: Dict[str, str]):
        if form_id not in REQUIRED_DOCUMENTS:
            raise ValueError(f"Unknown form id: {form_id}")
        missing = {slot.value: "This document is required" for slot in REQUIRED_DOCUMENTS[form_id]
                   if slot.value not in uploaded}
        if missing:
            raise ValidationError("Please upload all required documents.", missing)

    def submit(self, form_id: str, fields: Dict[str, str], uploaded: Dict[str, str]) -> SubmissionResult:
        """
        Sends the full field set plus uploaded file references.

        Raises ValidationError before any network call when required
        documents are missing; RemoteError, NetworkError and TokenError
        propagate to the caller.
        """
        self.validate(form_id, uploaded)
        payload = self.build_payload(fields, uploaded)

        try:
            data = self._send(form_id, payload, self._tokens.get())
        except TokenError:
            logger.info("Submission: CSRF token rejected, refreshing once.")
            self._tokens.invalidate()
            data = self._send(form_id, payload, self._tokens.get())

        application_id = data.get("applicationId")
        result = SubmissionResult(
            success=True,
            application_id=str(application_id) if application_id is not None else None,
            message=data.get("message"),
        )
        logger.info(f"Submission of '{form_id}' accepted (application {result.application_id}).")
        return result

    def _send(self, form_id: str, payload: Dict[str, Any], token: str) -> Dict[str, Any]:
        if form_id == FormId.REGISTRATION.value:
            return self._api.submit_application(payload, token)
        return self._api.update_user_data(payload, token)
