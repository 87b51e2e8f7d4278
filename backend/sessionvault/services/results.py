"""Result types for validation and session flows.

Validation never says why it failed: callers get either ``Valid(value)``
or ``INVALID``.
"""

from dataclasses import dataclass
from typing import Final, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Valid(Generic[T]):
    """Successful validation carrying its value."""

    value: T

    @property
    def is_valid(self) -> bool:
        return True


@dataclass(frozen=True)
class Invalid:
    """Failed validation. Deliberately carries no reason."""

    @property
    def is_valid(self) -> bool:
        return False


INVALID: Final = Invalid()

ValidationResult = Valid[T] | Invalid


@dataclass
class SessionResult(Generic[T]):
    """Outcome of a login, renewal or logout flow."""

    success: bool
    message: str
    data: T | None = None

    @classmethod
    def ok(cls, message: str, data: T | None = None) -> "SessionResult[T]":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, message: str) -> "SessionResult[T]":
        return cls(success=False, message=message)
