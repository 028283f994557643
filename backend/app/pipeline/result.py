"""Result values returned by pipeline stages."""

from dataclasses import dataclass
from typing import Generic, TypeVar

from backend.app.errors import ApiError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Stage succeeded with a value."""

    value: T


@dataclass(frozen=True)
class Err:
    """Stage failed; the composer stops here."""

    error: ApiError


Result = Ok[T] | Err
