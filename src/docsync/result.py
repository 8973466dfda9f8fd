"""Explicit success/failure values for boundaries that must not raise."""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from docsync.errors import ErrorKind

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T
    ok: bool = True


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str
    ok: bool = False


Result = Union[Ok[T], Err]


def unwrap_or(result: "Result[T]", default: T) -> T:
    """Return the wrapped value, or ``default`` for an Err."""
    if result.ok:
        return result.value  # type: ignore[union-attr]
    return default
