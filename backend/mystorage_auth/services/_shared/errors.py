"""
Domain-level error types used within the service layer.

These types are **framework-agnostic** and never import Flask or HTTP
concerns. Auth flows report expected failures as values (:class:`AuthFailure`
inside an :class:`~mystorage_auth.services._shared.dto.Outcome`) so callers
must handle them explicitly; only unexpected faults travel as exceptions.

The translation to HTTP responses (RFC 7807) is handled by
``mystorage_auth/core/errors.py``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from sqlalchemy.exc import IntegrityError


def violates(exc: IntegrityError, constraint_name: str) -> bool:
    """
    Check whether an IntegrityError originates from a specific constraint.

    Parameters
    ----------
    exc : IntegrityError
        The exception raised by SQLAlchemy during flush/commit.
    constraint_name : str
        The name of the database constraint to match (e.g., 'uq_accounts_email').

    Returns
    -------
    bool
        True if the IntegrityError message mentions the constraint. SQLite
        reports the column instead of the constraint name, so the column
        suffix of the constraint is also accepted.
    """
    message = str(exc.orig).lower() if exc.orig else ""
    name = constraint_name.lower()
    if name in message:
        return True
    # SQLite: "UNIQUE constraint failed: accounts.email"
    table_col = name.removeprefix("uq_").replace("_", ".", 1)
    return table_col in message


class ErrorKind(Enum):
    """Failure classes of the auth flows."""

    VALIDATION = "validation"
    CREDENTIAL = "credential"
    TOKEN = "token"
    STATE = "state"
    DEPENDENCY = "dependency"


# Client-facing messages for the classes that must not leak detail.
GENERIC_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.CREDENTIAL: "Invalid credentials.",
    ErrorKind.TOKEN: "Invalid or expired token.",
    ErrorKind.STATE: "Account is not confirmed or is inactive.",
    ErrorKind.DEPENDENCY: "The service is temporarily unavailable. Please try again later.",
}


@dataclass(frozen=True, slots=True)
class AuthFailure:
    """
    Typed failure of an auth flow.

    :param kind: Failure class.
    :type kind: ErrorKind
    :param messages: Client-safe messages. Only ``VALIDATION`` failures carry
        specific detail; every other kind uses a fixed generic message.
    :type messages: tuple[str, ...]
    """

    kind: ErrorKind
    messages: tuple[str, ...]

    @classmethod
    def validation(cls, *messages: str) -> AuthFailure:
        return cls(ErrorKind.VALIDATION, tuple(messages) or ("Invalid request.",))

    @classmethod
    def credential(cls) -> AuthFailure:
        return cls(ErrorKind.CREDENTIAL, (GENERIC_MESSAGES[ErrorKind.CREDENTIAL],))

    @classmethod
    def token(cls, message: str | None = None) -> AuthFailure:
        return cls(ErrorKind.TOKEN, (message or GENERIC_MESSAGES[ErrorKind.TOKEN],))

    @classmethod
    def state(cls) -> AuthFailure:
        return cls(ErrorKind.STATE, (GENERIC_MESSAGES[ErrorKind.STATE],))

    @classmethod
    def dependency(cls, message: str | None = None) -> AuthFailure:
        return cls(ErrorKind.DEPENDENCY, (message or GENERIC_MESSAGES[ErrorKind.DEPENDENCY],))

    @property
    def message(self) -> str:
        """Messages joined for single-line display."""
        return " ".join(self.messages)
