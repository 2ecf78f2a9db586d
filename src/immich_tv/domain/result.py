from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar, Union

T = TypeVar("T")
U = TypeVar("U")


class _Unit:
    __slots__ = ()

    def __repr__(self) -> str:
        return "UNIT"


UNIT = _Unit()


@dataclass(slots=True, frozen=True)
class Success(Generic[T]):
    value: T

    @property
    def is_success(self) -> bool:
        return True

    def map(self, fn: Callable[[T], U]) -> Success[U]:
        return Success(fn(self.value))

    def flat_map(self, fn: Callable[[T], Result[U]]) -> Result[U]:
        return fn(self.value)

    def value_or(self, default: Any) -> T:
        return self.value


@dataclass(slots=True, frozen=True)
class Failure:
    """A failed outcome carrying a message meant to be shown to the user."""

    message: str

    @property
    def is_success(self) -> bool:
        return False

    def map(self, fn: Callable[[Any], Any]) -> Failure:
        return self

    def flat_map(self, fn: Callable[[Any], Any]) -> Failure:
        return self

    def value_or(self, default: U) -> U:
        return default


Result = Union[Success[T], Failure]
