from __future__ import annotations

from typing import Any, Callable, Mapping, Optional, Protocol, TypeVar, runtime_checkable

from pydantic import BaseModel, ConfigDict, ValidationError

from .errors import RecordConversionError


@runtime_checkable
class Record(Protocol):
    """Anything a repository can persist: identifiable and serializable."""

    @property
    def id(self) -> Optional[int]: ...

    def to_json(self) -> dict[str, Any]: ...


R = TypeVar("R", bound=Record)

FromJson = Callable[[Mapping[str, Any]], R]
M = TypeVar("M", bound="RecordModel")


class RecordModel(BaseModel):
    """Pydantic base satisfying :class:`Record`.

    ``id`` may be left unset on records that are about to be created; the
    server or the store assigns it and the returned record carries it.
    """

    id: Optional[int] = None

    def to_json(self) -> dict[str, Any]:
        data = self.model_dump(mode="json")
        if data.get("id") is None:
            data.pop("id", None)
        return data

    @classmethod
    def from_json(cls: type[M], fields: Mapping[str, Any]) -> M:
        return cls.model_validate(dict(fields))


class Document(RecordModel):
    """Schema-less record keeping every field it is given."""

    model_config = ConfigDict(extra="allow")


def convert(from_json: FromJson[R], fields: Any) -> R:
    """Build a record, reporting bad payloads as :class:`RecordConversionError`."""
    if not isinstance(fields, Mapping):
        raise RecordConversionError(f"Expected a field mapping, got {type(fields).__name__}")
    try:
        return from_json(fields)
    except (ValidationError, ValueError, TypeError, KeyError) as exc:
        raise RecordConversionError(f"Invalid record payload: {exc}") from exc
