"""Success/failure values returned by every repository operation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, NoReturn, TypeVar, Union

from .errors import RepositoryError

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T

    @property
    def is_success(self) -> bool:
        return True

    @property
    def is_failure(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def fold(
        self,
        on_success: Callable[[T], U],
        on_failure: Callable[[RepositoryError], U],
    ) -> U:
        return on_success(self.value)


@dataclass(frozen=True)
class Failure:
    error: RepositoryError

    @property
    def is_success(self) -> bool:
        return False

    @property
    def is_failure(self) -> bool:
        return True

    @property
    def message(self) -> str:
        return self.error.message

    def unwrap(self) -> NoReturn:
        raise self.error

    def fold(
        self,
        on_success: Callable[[T], U],
        on_failure: Callable[[RepositoryError], U],
    ) -> U:
        return on_failure(self.error)


Result = Union[Success[T], Failure]
