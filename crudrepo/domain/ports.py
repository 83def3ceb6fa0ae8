"""Collaborator interfaces consumed by the repositories.

Any object with these methods satisfies the protocols; the concrete
adapters live in :mod:`crudrepo.infrastructure`.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Sequence, runtime_checkable


@runtime_checkable
class RecordStore(Protocol):
    """Key-addressable local persistence of field mappings, grouped by table.

    An empty mapping returned from a point operation means "not found".
    Failures raise :class:`crudrepo.domain.errors.StoreError`.
    """

    def save(self, table: str, fields: Mapping[str, Any]) -> dict[str, Any]:
        """Insert a record and return it with its (possibly assigned) ``id``."""
        ...

    def save_all(self, table: str, items: Sequence[Mapping[str, Any]]) -> int:
        """Upsert many records and return how many were written."""
        ...

    def replace(self, table: str, fields: Mapping[str, Any]) -> dict[str, Any]:
        """Insert or fully overwrite the record carrying ``fields["id"]``."""
        ...

    def get_all(self, table: str) -> list[dict[str, Any]]: ...

    def get_item(self, table: str, item_id: int) -> dict[str, Any]: ...

    def update(self, table: str, fields: Mapping[str, Any]) -> dict[str, Any]:
        """Merge ``fields`` into the stored record; ``{"id": id}`` or ``{}``."""
        ...

    def delete(self, table: str, item_id: int) -> dict[str, Any]: ...

    def delete_all(self, table: str) -> int: ...

    def find(self, table: str, filters: Mapping[str, Any]) -> list[dict[str, Any]]:
        """Return records whose fields equal every value in ``filters``."""
        ...

    def search(
        self, table: str, where: str, params: Sequence[Any] = ()
    ) -> dict[str, Any]: ...

    def search_all(
        self, table: str, where: str, params: Sequence[Any] = ()
    ) -> list[dict[str, Any]]: ...

    def search_update(
        self,
        table: str,
        where: str,
        params: Sequence[Any],
        fields: Mapping[str, Any],
    ) -> int: ...

    def search_delete(self, table: str, where: str, params: Sequence[Any] = ()) -> int: ...

    def search_all_raw(
        self, sql: str, params: Optional[Sequence[Any]] = None
    ) -> list[dict[str, Any]]: ...


@runtime_checkable
class RemoteEndpoint(Protocol):
    """HTTP-like resource returning decoded ``{status, message, data}`` bodies.

    Unreachable endpoints raise
    :class:`crudrepo.domain.errors.TransportUnavailable`; rejected requests
    without an envelope raise :class:`crudrepo.domain.errors.RemoteError`.
    """

    token: str

    def get(self, url: str) -> Any: ...

    def post(self, url: str, body: Mapping[str, Any]) -> Any: ...

    def put(self, url: str, body: Mapping[str, Any]) -> Any: ...

    def delete(self, url: str) -> Any: ...
