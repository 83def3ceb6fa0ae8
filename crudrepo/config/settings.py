"""Application settings for remote and local record access.

Environment variables are loaded from a ``.env`` file using ``python-dotenv``
and exposed through a Pydantic settings object.
"""

from __future__ import annotations

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

# Load environment variables from a .env file if present
load_dotenv()

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_DB_PATH = os.path.join("data", "crudrepo.sqlite3")
REQUEST_TIMEOUT = 10.0  # seconds
_TRUE_SET = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    """Immutable settings object used across the application."""

    base_url: str = DEFAULT_BASE_URL
    token: Optional[str] = None
    timeout: float = REQUEST_TIMEOUT
    max_retries: int = 0
    db_path: str = DEFAULT_DB_PATH
    log_responses: bool = False

    model_config = ConfigDict(frozen=True)


def _number(name: str, default: str, kind: type) -> float | int:
    raw = os.getenv(name, default)
    try:
        value = kind(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be a {kind.__name__}, got {raw!r}") from None
    if value < 0:
        raise RuntimeError(f"{name} must not be negative, got {raw!r}")
    return value


def _build_settings() -> Settings:
    """Construct the ``Settings`` instance based on environment variables."""

    base_url = os.getenv("CRUDREPO_BASE_URL", DEFAULT_BASE_URL).rstrip("/")
    token = os.getenv("CRUDREPO_TOKEN") or None
    log_flag = os.getenv("CRUDREPO_LOG_RESPONSES", "").strip().lower() in _TRUE_SET

    return Settings(
        base_url=base_url,
        token=token,
        timeout=float(_number("CRUDREPO_TIMEOUT", str(REQUEST_TIMEOUT), float)),
        max_retries=int(_number("CRUDREPO_MAX_RETRIES", "0", int)),
        db_path=os.getenv("CRUDREPO_DB_PATH", DEFAULT_DB_PATH),
        log_responses=log_flag,
    )


# Public settings instance
settings = _build_settings()
