"""Project configuration system.

Settings are loaded from environment variables (prefix ``JB_``) and,
optionally, a ``.env`` file in the working directory.

Example .env
------------
JB_DATA_DIR=/var/lib/jobboard
JB_STORAGE_BACKEND=file
JB_API_BASE_URL=http://localhost:5000/api
JB_LOG_LEVEL=DEBUG
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    All fields can be overridden via environment variables with the
    ``JB_`` prefix (case-insensitive), e.g. ``JB_STORAGE_BACKEND=memory``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="JB_",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Storage ------------------------------------------------------
    data_dir: Path = Field(
        default=Path(".jobboard"),
        description="Directory holding jobs.json, applications.json and feedbacks.json.",
    )

    storage_backend: Literal["file", "memory"] = Field(
        default="file",
        description="'file' persists to data_dir; 'memory' keeps nothing between runs.",
    )

    # --- Collaborator service -----------------------------------------
    api_base_url: str = Field(
        default="http://localhost:5000/api",
        description="Base URL of the OTP / verification / mail service.",
    )

    api_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Per-request timeout in seconds for the collaborator service.",
    )

    # --- Logging ------------------------------------------------------
    log_level: str = Field(
        default="INFO",
        description="Root log level used by the command-line interface.",
    )


# ---------------------------------------------------------------------------
# Module-level singleton with lazy initialisation
# ---------------------------------------------------------------------------

_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the application-wide Settings singleton.

    Instantiated lazily on first call so that tests can patch environment
    variables before the object is constructed.
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Discard the cached singleton.

    Intended for use in tests that need to vary environment variables
    between test cases.
    """
    global _settings
    _settings = None
