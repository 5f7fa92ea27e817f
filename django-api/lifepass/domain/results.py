"""Explicit success/failure values for per-line outcomes.

A failed line keeps its error instead of a ``success`` flag next to
half-populated price fields, so callers pattern-match on ``Ok``/``Err``.
"""

from dataclasses import dataclass
from typing import Generic, TypeAlias, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E

    @property
    def is_ok(self) -> bool:
        return False


Result: TypeAlias = Union[Ok[T], Err[E]]
