"""Repository contract and its remote, local and cache-aside variants."""

from .base import CrudRepository
from .cached import CachedRepository, MirrorFailure
from .local import LocalRepository
from .remote import RemoteRepository

__all__ = [
    "CachedRepository",
    "CrudRepository",
    "LocalRepository",
    "MirrorFailure",
    "RemoteRepository",
]
