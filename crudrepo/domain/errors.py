from __future__ import annotations

from typing import Optional


class RepositoryError(RuntimeError):
    """Base class for every failure a repository reports."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class NotFound(RepositoryError):
    """Neither the remote endpoint nor the local store holds the record."""


class RemoteError(RepositoryError):
    """The remote endpoint was reachable but rejected the operation."""


class StoreError(RepositoryError):
    """The local record store failed during a mandatory step."""


class TransportUnavailable(RepositoryError):
    """The remote endpoint could not be reached (timeout, refused, DNS)."""


class RecordConversionError(RepositoryError):
    """A field mapping could not be turned into a record."""
