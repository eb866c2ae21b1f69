import threading
import time
from typing import Callable, Optional
from tenacity import RetryError, Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed
from membership_portal.core.errors import NetworkError, RemoteError, TokenError
from membership_portal.core.logger import get_logger

logger = get_logger(__name__)


class TokenCache:
    """
    Holds the anti-forgery token shared by every state-changing call.

    A missing or expired token is fetched from the provider; two failed
    fetches in a row surface as a TokenError.
    """

    def __init__(self, provider: Callable[[], str], expiry_seconds: float = 1800.0,
                 clock: Callable[[], float] = time.monotonic, fetch_attempts: int = 2):
        self._provider = provider
        self._expiry_seconds = expiry_seconds
        self._clock = clock
        self._fetch_attempts = fetch_attempts
        self._token: Optional[str] = None
        self._fetched_at: Optional[float] = None
        self._lock = threading.Lock()

    @property
    def token(self) -> Optional[str]:
        return self._token

    def get(self) -> str:
        with self._lock:
            if self._token and not self._is_expired():
                return self._token
            self._token = self._fetch()
            self._fetched_at = self._clock()
            return self._token

    def invalidate(self):
        with self._lock:
            self._token = None
            self._fetched_at = None

    def _is_expired(self) -> bool:
        return self._fetched_at is None or self._clock() - self._fetched_at >= self._expiry_seconds

    def _fetch(self) -> str:
        try:
            for attempt in Retrying(
                stop=stop_after_attempt(self._fetch_attempts),
                wait=wait_fixed(0),
                retry=retry_if_exception_type((TokenError, NetworkError, RemoteError)),
            ):
                with attempt:
                    token = self._provider()
                    if not token:
                        raise TokenError("Token provider returned an empty token")
        except RetryError as e:
            cause = e.last_attempt.exception()
            logger.error(f"CSRF token fetch failed after {self._fetch_attempts} attempts: {cause}")
            raise TokenError(f"Could not obtain CSRF token: {cause}") from cause
        logger.debug("CSRF token refreshed.")
        return token
