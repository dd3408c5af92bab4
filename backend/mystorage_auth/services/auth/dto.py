# mystorage_auth/services/auth/dto.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class RegisterIn:
    """
    Input DTO for registration.

    :param email: Account email (normalized by the model).
    :type email: str
    :param password: Raw password (checked against the password policy).
    :type password: str
    :param display_name: Optional human-readable name.
    :type display_name: str | None
    """

    email: str
    password: str
    display_name: str | None = None


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param email: Account email.
    :type email: str
    :param password: Raw password (to be verified).
    :type password: str
    """

    email: str
    password: str


@dataclass(frozen=True, slots=True)
class RefreshIn:
    """
    Input DTO for session refresh.

    :param access_token: The (possibly expired) access JWT of the session.
    :type access_token: str
    :param refresh_token: Opaque refresh secret issued with it.
    :type refresh_token: str
    """

    access_token: str
    refresh_token: str


@dataclass(frozen=True, slots=True)
class ResetPasswordIn:
    account_id: int
    token: str
    new_password: str


@dataclass(frozen=True, slots=True)
class ChangePasswordIn:
    """
    Input DTO for an authenticated password change.

    :param account_id: Account taken from the verified access token.
    :type account_id: int
    :param current_password: Password the caller claims is current.
    :type current_password: str
    :param new_password: Replacement password.
    :type new_password: str
    :param confirm_password: Must equal ``new_password``.
    :type confirm_password: str
    """

    account_id: int
    current_password: str
    new_password: str
    confirm_password: str


@dataclass(frozen=True, slots=True)
class LogoutIn:
    """
    Input DTO for logout.

    :param access_token: Access JWT identifying the account (expiry ignored).
    :type access_token: str
    :param refresh_token: Refresh secret to revoke.
    :type refresh_token: str | None
    :param all_sessions: If True, revoke every refresh token of the account.
    :type all_sessions: bool
    """

    access_token: str
    refresh_token: str | None = None
    all_sessions: bool = False


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class TokenPairOut:
    """
    Output DTO with access and refresh tokens.

    :param access_token: Encoded access JWT.
    :type access_token: str
    :param access_expires_at: Access token expiry (UTC).
    :type access_expires_at: datetime
    :param refresh_token: Opaque refresh secret.
    :type refresh_token: str
    :param refresh_expires_at: Refresh token expiry (UTC).
    :type refresh_expires_at: datetime
    """

    access_token: str
    access_expires_at: datetime
    refresh_token: str
    refresh_expires_at: datetime


@dataclass(frozen=True, slots=True)
class RegisteredOut:
    account_id: int
    email: str


@dataclass(frozen=True, slots=True)
class AccountOut:
    """Public view of the caller's own account."""

    id: int
    email: str
    display_name: str | None
    email_confirmed: bool
    created_at: datetime
