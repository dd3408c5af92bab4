# comments in English; reST docstrings strict
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from mystorage_auth.services._shared.errors import AuthFailure

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Outcome(Generic[T]):
    """
    Result of an auth flow: either a value or a typed failure.

    :param value: Payload on success (may be ``None`` for flows without one).
    :type value: T | None
    :param error: Failure description; ``None`` on success.
    :type error: AuthFailure | None
    """

    value: T | None = None
    error: AuthFailure | None = None

    @property
    def ok(self) -> bool:
        """``True`` when the flow succeeded."""
        return self.error is None

    @classmethod
    def success(cls, value: T | None = None) -> Outcome[T]:
        return cls(value=value, error=None)

    @classmethod
    def failure(cls, error: AuthFailure) -> Outcome[T]:
        return cls(value=None, error=error)
