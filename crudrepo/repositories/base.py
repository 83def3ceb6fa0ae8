from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Generic, Mapping

from crudrepo.domain.errors import RecordConversionError
from crudrepo.domain.record import FromJson, R, convert
from crudrepo.domain.result import Result

logger = logging.getLogger(__name__)


class CrudRepository(ABC, Generic[R]):
    """Storage-agnostic record operations bound to one table.

    Every operation returns a :data:`~crudrepo.domain.result.Result`;
    documented failures never escape as exceptions. Remote, local and
    cache-aside variants share these signatures so callers can swap them.
    """

    def __init__(self, table: str, from_json: FromJson[R]) -> None:
        self._table = table
        self._from_json = from_json

    @property
    def table(self) -> str:
        return self._table

    @abstractmethod
    def get_all_items(self) -> Result[list[R]]:
        """
        Fetch every record of the table.

        Example:
            >>> repo.get_all_items()
            Success(value=[User(id=1, name="Ann"), User(id=2, name="Bob")])
        """

    @abstractmethod
    def get_item(self, item_id: int) -> Result[R]:
        """
        Fetch a record by its identifier.

        :param item_id: Unique identifier of the record.
        :return: ``Success`` with the record, or ``Failure`` if missing or on error.
        """

    @abstractmethod
    def create_item(self, item: R) -> Result[R]:
        """
        Persist a new record.

        :return: The created record with server/store-assigned fields merged in.
        """

    @abstractmethod
    def update_item(self, item_id: int, fields: Mapping[str, Any]) -> Result[R]:
        """
        Apply a partial update to an existing record.

        Example:
            >>> repo.update_item(5, {"name": "B"})
            Success(value=User(id=5, name="B"))

        :param item_id: Identifier of the record to update.
        :param fields: Field mapping with the new values.
        :return: The updated record.
        """

    @abstractmethod
    def delete_item(self, item_id: int) -> Result[int]:
        """
        Delete a record by its identifier.

        :return: The identifier of the deleted record.
        """

    @abstractmethod
    def delete_all(self) -> Result[int]:
        """Delete every record of the table and return how many went."""

    @abstractmethod
    def custom_get_items(self, filters: Mapping[str, Any]) -> Result[list[R]]:
        """
        Fetch the records whose fields equal every value in ``filters``.

        Example:
            >>> repo.custom_get_items({"role": "admin", "active": True})
        """

    def replace_item(self, item: R) -> Result[R]:
        """Update ``item`` if ``get_item`` finds it, otherwise create it.

        Any lookup failure, including an unreachable remote, leads to a
        create attempt.
        """
        item_id = item.id
        if item_id is None:
            return self.create_item(item)
        found = self.get_item(item_id)
        if found.is_success:
            return self.update_item(item_id, item.to_json())
        logger.debug(
            "replace_item: %s/%s not found (%s), creating",
            self._table,
            item_id,
            found.fold(lambda _: "", lambda err: err.message),
        )
        return self.create_item(item)

    # -- conversion helpers shared by the variants ---------------------------

    def _to_record(self, fields: Any) -> R:
        return convert(self._from_json, fields)

    def _to_records(self, payload: Any) -> list[R]:
        if not isinstance(payload, list):
            raise RecordConversionError(
                f"Expected a list of records, got {type(payload).__name__}"
            )
        return [self._to_record(fields) for fields in payload]

