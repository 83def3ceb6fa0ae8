"""Unified record access over a remote API, a local SQLite store, or both.

The cache-aside :class:`CachedRepository` reads remote-first with a local
fallback and writes through to the remote before mirroring locally.
"""

from crudrepo.domain import (
    Document,
    Failure,
    NotFound,
    Record,
    RecordModel,
    RemoteError,
    RepositoryError,
    Result,
    StoreError,
    Success,
    TransportUnavailable,
)
from crudrepo.repositories import (
    CachedRepository,
    CrudRepository,
    LocalRepository,
    MirrorFailure,
    RemoteRepository,
)

__version__ = "0.1.0"

__all__ = [
    "CachedRepository",
    "CrudRepository",
    "Document",
    "Failure",
    "LocalRepository",
    "MirrorFailure",
    "NotFound",
    "Record",
    "RecordModel",
    "RemoteError",
    "RemoteRepository",
    "RepositoryError",
    "Result",
    "StoreError",
    "Success",
    "TransportUnavailable",
]
