from __future__ import annotations

from typing import Any, Mapping, Optional

from crudrepo.domain.envelope import Envelope, parse_envelope
from crudrepo.domain.errors import RemoteError, RepositoryError
from crudrepo.domain.ports import RemoteEndpoint
from crudrepo.domain.record import FromJson, R
from crudrepo.domain.result import Failure, Result, Success

from . import routes
from .base import CrudRepository


def accepted(response: Any) -> Envelope:
    """Parse ``response`` and raise :class:`RemoteError` unless ``status`` is true."""
    envelope = parse_envelope(response)
    if not envelope.status:
        raise RemoteError(envelope.error_message)
    return envelope


def remote_count(envelope: Envelope) -> Optional[int]:
    data = envelope.data
    if isinstance(data, int) and not isinstance(data, bool):
        return data
    return None


def deleted_id(envelope: Envelope, item_id: int) -> int:
    data = envelope.data
    if isinstance(data, Mapping) and isinstance(data.get("id"), int):
        return int(data["id"])
    return item_id


class RemoteRepository(CrudRepository[R]):
    """Forwards every operation to a remote endpoint, no local copy."""

    def __init__(
        self,
        remote: RemoteEndpoint,
        table: str,
        url: str,
        from_json: FromJson[R],
    ) -> None:
        super().__init__(table, from_json)
        self._remote = remote
        self._url = url

    @property
    def token(self) -> str:
        return self._remote.token

    @token.setter
    def token(self, value: str) -> None:
        self._remote.token = value

    def get_all_items(self) -> Result[list[R]]:
        try:
            envelope = accepted(self._remote.get(routes.collection_url(self._url, self._table)))
            return Success(self._to_records(envelope.data))
        except RepositoryError as exc:
            return Failure(exc)

    def get_item(self, item_id: int) -> Result[R]:
        try:
            envelope = accepted(
                self._remote.get(routes.item_url(self._url, self._table, item_id))
            )
            return Success(self._to_record(envelope.data))
        except RepositoryError as exc:
            return Failure(exc)

    def create_item(self, item: R) -> Result[R]:
        try:
            envelope = accepted(
                self._remote.post(routes.collection_url(self._url, self._table), item.to_json())
            )
            return Success(self._to_record(envelope.data))
        except RepositoryError as exc:
            return Failure(exc)

    def update_item(self, item_id: int, fields: Mapping[str, Any]) -> Result[R]:
        try:
            envelope = accepted(
                self._remote.put(routes.item_url(self._url, self._table, item_id), dict(fields))
            )
            return Success(self._to_record(envelope.data))
        except RepositoryError as exc:
            return Failure(exc)

    def delete_item(self, item_id: int) -> Result[int]:
        try:
            envelope = accepted(
                self._remote.delete(routes.item_url(self._url, self._table, item_id))
            )
            return Success(deleted_id(envelope, item_id))
        except RepositoryError as exc:
            return Failure(exc)

    def delete_all(self) -> Result[int]:
        try:
            envelope = accepted(
                self._remote.delete(routes.collection_url(self._url, self._table))
            )
        except RepositoryError as exc:
            return Failure(exc)
        count = remote_count(envelope)
        return Success(count if count is not None else 0)

    def custom_get_items(self, filters: Mapping[str, Any]) -> Result[list[R]]:
        try:
            envelope = accepted(
                self._remote.get(routes.filter_url(self._url, self._table, filters))
            )
            return Success(self._to_records(envelope.data))
        except RepositoryError as exc:
            return Failure(exc)
