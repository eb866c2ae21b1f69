import requests
import json
from typing import Any, Dict, Optional
from pydantic import ValidationError as SchemaValidationError
from membership_portal.api.schemas import ApiEnvelope
from membership_portal.core.config import settings
from membership_portal.core.errors import NetworkError, RemoteError, TokenError
from membership_portal.core.logger import get_logger

logger = get_logger(__name__)

INVALID_CSRF = "INVALID_CSRF"


class PortalApiClient:
    """
    Thin client for the single action-tagged backend endpoint.

    Every call returns the decoded JSON envelope or raises NetworkError,
    TokenError or RemoteError.
    """

    def __init__(self, endpoint_url: str = None, timeout: float = None):
        self.endpoint_url = endpoint_url or settings.PORTAL_ENDPOINT_URL
        self.timeout = timeout if timeout is not None else settings.REQUEST_TIMEOUT_SECONDS

    def get_csrf_token(self) -> str:
        data = self._get("getCsrfToken")
        envelope = self._envelope(data, "getCsrfToken")
        token = data.get("csrfToken")
        if not envelope.success or not token:
            raise TokenError(envelope.message or "Failed to get CSRF token")
        return token

    def auto_save_form(self, form_data: Dict[str, Any], csrf_token: str) -> Dict[str, Any]:
        return self._post_json("autoSaveForm", {"formData": form_data, "csrfToken": csrf_token})

    def upload_file(self, file_name: str, content: bytes, content_type: str, csrf_token: str) -> str:
        """Uploads one file as multipart form data and returns the stored file URL."""
        logger.info(f"Uploading file {file_name} ({len(content)} bytes)...")
        try:
            response = requests.post(
                self.endpoint_url,
                data={"action": "uploadFile", "csrfToken": csrf_token},
                files={"file": (file_name, content, content_type)},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise self._translate(e, "uploadFile")

        data = self._decode(response, "uploadFile")
        envelope = self._envelope(data, "uploadFile")
        # The upload action may answer with a bare {fileUrl}
        if "success" in envelope.model_fields_set and not envelope.success:
            self._raise_for_envelope(envelope, "uploadFile")
        file_url = data.get("fileUrl")
        if not file_url:
            raise RemoteError("File upload failed: no file URL returned")
        return file_url

    def submit_application(self, fields: Dict[str, Any], csrf_token: str) -> Dict[str, Any]:
        return self._post_json("submitApplication", {**fields, "csrfToken": csrf_token})

    def update_user_data(self, fields: Dict[str, Any], csrf_token: str) -> Dict[str, Any]:
        return self._post_json("updateUserData", {**fields, "csrfToken": csrf_token})

    def verify_member(self, unique_id: str, email: str, csrf_token: str) -> Dict[str, Any]:
        return self._post_json("verifyMember", {"uniqueId": unique_id, "email": email, "csrfToken": csrf_token})

    def _get(self, action: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        query = {"action": action, **(params or {})}
        try:
            response = requests.get(self.endpoint_url, params=query, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise self._translate(e, action)
        return self._decode(response, action)

    def _post_json(self, action: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        body = {"action": action, **payload}
        logger.debug(f"Portal payload for {action}: {json.dumps(body, default=str)[:500]}")
        try:
            response = requests.post(
                self.endpoint_url,
                json=body,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise self._translate(e, action)

        data = self._decode(response, action)
        envelope = self._envelope(data, action)
        if not envelope.success:
            self._raise_for_envelope(envelope, action)
        return data

    def _decode(self, response, action: str) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise RemoteError(f"{action}: response is not valid JSON", status_code=response.status_code) from e
        if not isinstance(data, dict):
            raise RemoteError(f"{action}: unexpected response shape", status_code=response.status_code)
        return data

    def _envelope(self, data: Dict[str, Any], action: str) -> ApiEnvelope:
        try:
            return ApiEnvelope.model_validate(data)
        except SchemaValidationError as e:
            raise RemoteError(f"{action}: malformed response envelope ({e.error_count()} error(s))") from e

    def _raise_for_envelope(self, envelope: ApiEnvelope, action: str):
        message = envelope.message or f"{action} failed"
        if envelope.error_code == INVALID_CSRF:
            raise TokenError(message)
        raise RemoteError(message, error_code=envelope.error_code)

    def _translate(self, error: requests.RequestException, action: str) -> Exception:
        """Maps a requests failure onto the portal error taxonomy."""
        response = getattr(error, "response", None)
        if response is None:
            logger.error(f"Portal connection failed during {action}: {error}")
            return NetworkError(f"{action}: {error}")

        status = response.status_code
        logger.error(f"Portal Error Response ({action}): {status} - {response.text[:200]}")
        if status == 429 or status >= 500:
            return NetworkError(f"{action}: HTTP {status}")
        if status in (401, 403):
            return TokenError(f"{action}: HTTP {status}")
        return RemoteError(f"{action}: HTTP {status}", status_code=status)
