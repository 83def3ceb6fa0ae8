from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from .errors import RemoteError


class Envelope(BaseModel):
    """Uniform ``{status, message, data}`` wrapper of every remote response."""

    status: bool
    message: Optional[str] = None
    data: Any = None

    model_config = ConfigDict(frozen=True, extra="ignore")

    @property
    def error_message(self) -> str:
        return self.message or "Remote endpoint reported a failure"


def parse_envelope(payload: Any) -> Envelope:
    """Validate a decoded response body, raising :class:`RemoteError` if malformed."""
    if not isinstance(payload, dict):
        raise RemoteError(f"Malformed response envelope: {type(payload).__name__}")
    try:
        return Envelope.model_validate(payload)
    except ValidationError as exc:
        raise RemoteError(f"Malformed response envelope: {exc.error_count()} error(s)") from exc


def looks_like_envelope(payload: Any) -> bool:
    return isinstance(payload, dict) and isinstance(payload.get("status"), bool)
