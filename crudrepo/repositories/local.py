from __future__ import annotations

from typing import Any, Mapping

from crudrepo.domain.errors import NotFound, RepositoryError
from crudrepo.domain.ports import RecordStore
from crudrepo.domain.record import FromJson, R
from crudrepo.domain.result import Failure, Result, Success

from .base import CrudRepository


class LocalRepository(CrudRepository[R]):
    """Forwards every operation to a local record store."""

    def __init__(
        self,
        store: RecordStore,
        table: str,
        from_json: FromJson[R],
    ) -> None:
        super().__init__(table, from_json)
        self._store = store

    def get_all_items(self) -> Result[list[R]]:
        try:
            return Success(self._to_records(self._store.get_all(self._table)))
        except RepositoryError as exc:
            return Failure(exc)

    def get_item(self, item_id: int) -> Result[R]:
        try:
            fields = self._store.get_item(self._table, item_id)
            if not fields:
                return Failure(NotFound(f"Item {item_id} not found in {self._table}"))
            return Success(self._to_record(fields))
        except RepositoryError as exc:
            return Failure(exc)

    def create_item(self, item: R) -> Result[R]:
        try:
            return Success(self._to_record(self._store.save(self._table, item.to_json())))
        except RepositoryError as exc:
            return Failure(exc)

    def update_item(self, item_id: int, fields: Mapping[str, Any]) -> Result[R]:
        try:
            updated = self._store.update(self._table, {**fields, "id": item_id})
            if not updated:
                return Failure(NotFound(f"Item {item_id} not found in {self._table}"))
            return Success(self._to_record(self._store.get_item(self._table, item_id)))
        except RepositoryError as exc:
            return Failure(exc)

    def delete_item(self, item_id: int) -> Result[int]:
        try:
            deleted = self._store.delete(self._table, item_id)
        except RepositoryError as exc:
            return Failure(exc)
        if not deleted:
            return Failure(NotFound(f"Item {item_id} not found in {self._table}"))
        return Success(int(deleted["id"]))

    def delete_all(self) -> Result[int]:
        try:
            return Success(self._store.delete_all(self._table))
        except RepositoryError as exc:
            return Failure(exc)

    def custom_get_items(self, filters: Mapping[str, Any]) -> Result[list[R]]:
        try:
            return Success(self._to_records(self._store.find(self._table, filters)))
        except RepositoryError as exc:
            return Failure(exc)
