import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

# Load environment variables
env_path = Path(__file__).resolve().parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DEFAULT_ENDPOINT_URL = "https://script.google.com/macros/s/portal-backend/exec"


def _env_float(key: str, default: float) -> float:
    try:
        return float(os.getenv(key, default))
    except (TypeError, ValueError):
        return default


def _env_int(key: str, default: int) -> int:
    try:
        return int(os.getenv(key, default))
    except (TypeError, ValueError):
        return default


class Settings(BaseModel):
    model_config = ConfigDict(case_sensitive=True)

    APP_NAME: str = "Membership Portal"
    PORTAL_ENDPOINT_URL: str = Field(default_factory=lambda: os.getenv("PORTAL_ENDPOINT_URL", DEFAULT_ENDPOINT_URL))
    STORAGE_DB_URL: str = Field(default_factory=lambda: os.getenv("STORAGE_DB_URL", "sqlite:///./portal_autosave.db"))
    LOG_LEVEL: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    # Autosave timings
    AUTOSAVE_DEBOUNCE_SECONDS: float = Field(default_factory=lambda: _env_float("AUTOSAVE_DEBOUNCE_SECONDS", 2.0))
    AUTOSAVE_SYNC_INTERVAL_SECONDS: float = Field(default_factory=lambda: _env_float("AUTOSAVE_SYNC_INTERVAL_SECONDS", 30.0))
    AUTOSAVE_MAX_RETRIES: int = Field(default_factory=lambda: _env_int("AUTOSAVE_MAX_RETRIES", 3))
    AUTOSAVE_RETRY_DELAY_SECONDS: float = Field(default_factory=lambda: _env_float("AUTOSAVE_RETRY_DELAY_SECONDS", 5.0))

    # Remote calls
    REQUEST_TIMEOUT_SECONDS: float = Field(default_factory=lambda: _env_float("REQUEST_TIMEOUT_SECONDS", 30.0))
    CSRF_TOKEN_EXPIRY_SECONDS: float = Field(default_factory=lambda: _env_float("CSRF_TOKEN_EXPIRY_SECONDS", 1800.0))

    # Limits
    STORAGE_QUOTA_BYTES: int = Field(default_factory=lambda: _env_int("STORAGE_QUOTA_BYTES", 5 * 1024 * 1024))
    MAX_UPLOAD_BYTES: int = Field(default_factory=lambda: _env_int("MAX_UPLOAD_BYTES", 5 * 1024 * 1024))


settings = Settings()


def reload_settings():
    """Reload settings from .env, overriding values already in the environment."""
    global settings
    load_dotenv(dotenv_path=env_path, override=True)
    settings = Settings()
    return settings


@dataclass
class AutoSaveConfig:
    """Explicit configuration handed to the autosave engine at construction."""
    endpoint_url: str
    token_provider: Callable[[], str]

    @classmethod
    def from_settings(cls, token_provider: Callable[[], str], source: Settings = None) -> "AutoSaveConfig":
        source = source or settings
        return cls(endpoint_url=source.PORTAL_ENDPOINT_URL, token_provider=token_provider)
