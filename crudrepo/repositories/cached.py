"""Remote-backed repository keeping a local mirror for offline reads.

Reads ask the remote endpoint first and fall back to the mirror when it is
unreachable or answers with a failure envelope. Writes and deletes must
succeed remotely; the mirror follows only after a remote success, so it
may go stale but never holds data the remote refused.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Sequence

from crudrepo.domain.errors import NotFound, RepositoryError, StoreError
from crudrepo.domain.ports import RecordStore, RemoteEndpoint
from crudrepo.domain.record import FromJson, R
from crudrepo.domain.result import Failure, Result, Success
from crudrepo.logging_config import FallbackStats

from . import routes
from .base import CrudRepository
from .remote import accepted, deleted_id, remote_count

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MirrorFailure:
    """A best-effort mirror write that did not make it into the store."""

    operation: str
    table: str
    item_id: Optional[int]
    error: Exception


MirrorErrorHandler = Callable[[MirrorFailure], None]


class CachedRepository(CrudRepository[R]):
    """Cache-aside repository over a remote endpoint and a local record store.

    - ``get_item``/``get_all_items``/``custom_get_items``: remote first,
      mirror the answer, fall back to the store on any remote failure.
    - ``create_item``/``update_item``: remote only, then mirror the result.
    - ``delete_item``/``delete_all``: remote first, then the mandatory local
      delete; a failing local delete is reported as :class:`StoreError`.

    Mirror writes after a successful remote call are best-effort: a failure
    is logged and handed to ``on_mirror_error`` but the call still succeeds.
    With ``filter_local_fallback`` left off, the offline answer of
    ``custom_get_items`` is the whole mirrored table.
    """

    def __init__(
        self,
        remote: RemoteEndpoint,
        store: RecordStore,
        table: str,
        url: str,
        from_json: FromJson[R],
        *,
        on_mirror_error: Optional[MirrorErrorHandler] = None,
        stats: Optional[FallbackStats] = None,
        filter_local_fallback: bool = False,
    ) -> None:
        super().__init__(table, from_json)
        self._remote = remote
        self._store = store
        self._url = url
        self._on_mirror_error = on_mirror_error
        self._stats = stats
        self._filter_local_fallback = filter_local_fallback

    @property
    def token(self) -> str:
        return self._remote.token

    @token.setter
    def token(self, value: str) -> None:
        self._remote.token = value

    # -- reads -----------------------------------------------------------

    def get_item(self, item_id: int) -> Result[R]:
        try:
            envelope = accepted(
                self._remote.get(routes.item_url(self._url, self._table, item_id))
            )
            item = self._to_record(envelope.data)
        except RepositoryError as exc:
            logger.info(
                "Remote read of %s/%s failed (%s), using local mirror",
                self._table,
                item_id,
                exc.message,
                extra={"table": self._table},
            )
        else:
            self._mirror_one("get_item", item_id, envelope.data)
            self._record_remote()
            return Success(item)

        self._record_fallback()
        try:
            fields = self._store.get_item(self._table, item_id)
            if fields:
                return Success(self._to_record(fields))
        except RepositoryError as exc:
            logger.warning(
                "Local lookup of %s/%s failed: %s",
                self._table,
                item_id,
                exc.message,
                extra={"table": self._table},
            )
        return Failure(NotFound(f"Item {item_id} not found in {self._table}"))

    def get_all_items(self) -> Result[list[R]]:
        return self._read_list("get_all_items", routes.collection_url(self._url, self._table), {})

    def custom_get_items(self, filters: Mapping[str, Any]) -> Result[list[R]]:
        return self._read_list(
            "custom_get_items", routes.filter_url(self._url, self._table, filters), filters
        )

    def _read_list(self, operation: str, url: str, filters: Mapping[str, Any]) -> Result[list[R]]:
        try:
            envelope = accepted(self._remote.get(url))
            items = self._to_records(envelope.data)
        except RepositoryError as exc:
            logger.info(
                "Remote %s on %s failed (%s), using local mirror",
                operation,
                self._table,
                exc.message,
                extra={"table": self._table},
            )
        else:
            self._mirror_many(operation, envelope.data)
            self._record_remote()
            return Success(items)

        self._record_fallback()
        try:
            if filters and self._filter_local_fallback:
                rows = self._store.find(self._table, filters)
            else:
                rows = self._store.get_all(self._table)
            return Success(self._to_records(rows))
        except StoreError as exc:
            return Failure(exc)
        except RepositoryError as exc:
            return Failure(StoreError(f"Local mirror of {self._table} unreadable: {exc.message}"))

    # -- writes ----------------------------------------------------------

    def create_item(self, item: R) -> Result[R]:
        try:
            envelope = accepted(
                self._remote.post(routes.collection_url(self._url, self._table), item.to_json())
            )
            created = self._to_record(envelope.data)
        except RepositoryError as exc:
            return Failure(exc)
        self._mirror_one("create_item", created.id, envelope.data)
        return Success(created)

    def update_item(self, item_id: int, fields: Mapping[str, Any]) -> Result[R]:
        try:
            envelope = accepted(
                self._remote.put(routes.item_url(self._url, self._table, item_id), dict(fields))
            )
            updated = self._to_record(envelope.data)
        except RepositoryError as exc:
            return Failure(exc)
        self._mirror_one("update_item", item_id, envelope.data)
        return Success(updated)

    # -- deletes ---------------------------------------------------------

    def delete_item(self, item_id: int) -> Result[int]:
        try:
            envelope = accepted(
                self._remote.delete(routes.item_url(self._url, self._table, item_id))
            )
        except RepositoryError as exc:
            return Failure(exc)
        try:
            self._store.delete(self._table, item_id)
        except RepositoryError as exc:
            return Failure(_as_store_error(exc, f"{self._table}/{item_id}"))
        return Success(deleted_id(envelope, item_id))

    def delete_all(self) -> Result[int]:
        try:
            envelope = accepted(
                self._remote.delete(routes.collection_url(self._url, self._table))
            )
        except RepositoryError as exc:
            return Failure(exc)
        try:
            removed = self._store.delete_all(self._table)
        except RepositoryError as exc:
            return Failure(_as_store_error(exc, self._table))
        count = remote_count(envelope)
        return Success(count if count is not None else removed)

    # -- mirror ----------------------------------------------------------

    def _mirror_one(self, operation: str, item_id: Optional[int], fields: Any) -> None:
        try:
            if not isinstance(fields, Mapping):
                raise StoreError("Remote payload is not a field mapping")
            if fields.get("id") is None and item_id is not None:
                fields = {**fields, "id": item_id}
            self._store.replace(self._table, fields)
        except RepositoryError as exc:
            self._mirror_failed(operation, item_id, exc)

    def _mirror_many(self, operation: str, rows: Sequence[Mapping[str, Any]]) -> None:
        # mirror rows keep the remote id
        keyed = [row for row in rows if row.get("id") is not None]
        if len(keyed) < len(rows):
            self._mirror_failed(
                operation,
                None,
                StoreError(f"{len(rows) - len(keyed)} remote record(s) without an id"),
            )
        if not keyed:
            return
        try:
            self._store.save_all(self._table, keyed)
        except RepositoryError as exc:
            self._mirror_failed(operation, None, exc)

    def _mirror_failed(self, operation: str, item_id: Optional[int], exc: Exception) -> None:
        logger.warning(
            "Mirror write after %s failed for %s/%s: %s",
            operation,
            self._table,
            item_id if item_id is not None else "*",
            exc,
            extra={"table": self._table},
        )
        if self._on_mirror_error is None:
            return
        try:
            self._on_mirror_error(MirrorFailure(operation, self._table, item_id, exc))
        except Exception:
            logger.exception(
                "on_mirror_error callback raised for %s/%s",
                self._table,
                item_id if item_id is not None else "*",
                extra={"table": self._table},
            )

    def _record_remote(self) -> None:
        if self._stats is not None:
            self._stats.record_remote()

    def _record_fallback(self) -> None:
        if self._stats is not None:
            self._stats.record_fallback()


def _as_store_error(exc: RepositoryError, where: str) -> StoreError:
    if isinstance(exc, StoreError):
        return exc
    return StoreError(f"Local delete of {where} failed: {exc.message}")
