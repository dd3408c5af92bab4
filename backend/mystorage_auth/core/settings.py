"""Immutable settings objects handed to services and adapters.

Flask keeps its configuration in a mutable mapping (``app.config``). Services
never read it directly: :func:`auth_settings_from` and
:func:`email_settings_from` snapshot the relevant keys once, validate them,
and the resulting frozen dataclasses are passed explicitly at construction.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from typing import Any


@dataclass(frozen=True, slots=True)
class AuthSettings:
    """
    Token and account-lifecycle configuration.

    :param issuer: ``iss`` claim written into and required from access tokens.
    :type issuer: str
    :param audience: ``aud`` claim written into and required from access tokens.
    :type audience: str
    :param signing_key: HMAC secret for access tokens.
    :type signing_key: str
    :param algorithm: JWS algorithm (only this one is accepted on decode).
    :type algorithm: str
    :param access_token_lifetime: Access token validity window.
    :type access_token_lifetime: timedelta
    :param refresh_token_lifetime: Refresh token validity window.
    :type refresh_token_lifetime: timedelta
    :param max_refresh_tokens: Per-account ceiling on stored refresh tokens.
    :type max_refresh_tokens: int
    :param confirmation_token_lifetime: Email confirmation token validity.
    :type confirmation_token_lifetime: timedelta
    :param reset_token_lifetime: Password reset token validity.
    :type reset_token_lifetime: timedelta
    :param password_min_length: Minimum password length.
    :type password_min_length: int
    :param password_require_digit: Require a digit (likewise ``_lower``,
        ``_upper`` and ``_symbol`` for the other character classes).
    :type password_require_digit: bool
    :param base_url: Default base URL for emailed links (may be empty).
    :type base_url: str
    """

    issuer: str
    audience: str
    signing_key: str
    access_token_lifetime: timedelta
    refresh_token_lifetime: timedelta
    max_refresh_tokens: int
    confirmation_token_lifetime: timedelta = timedelta(hours=24)
    reset_token_lifetime: timedelta = timedelta(minutes=60)
    password_min_length: int = 8
    password_require_digit: bool = True
    password_require_lower: bool = True
    password_require_upper: bool = True
    password_require_symbol: bool = True
    base_url: str = ""
    algorithm: str = "HS256"

    def __post_init__(self) -> None:
        if not self.signing_key:
            raise ValueError("signing_key must not be empty.")
        if self.access_token_lifetime <= timedelta(0):
            raise ValueError("access_token_lifetime must be positive.")
        if self.refresh_token_lifetime <= timedelta(0):
            raise ValueError("refresh_token_lifetime must be positive.")
        # An access token must never outlive the refresh token it is paired with.
        if self.access_token_lifetime > self.refresh_token_lifetime:
            raise ValueError("access_token_lifetime must not exceed refresh_token_lifetime.")
        if self.max_refresh_tokens < 1:
            raise ValueError("max_refresh_tokens must be at least 1.")
        if self.password_min_length < 1:
            raise ValueError("password_min_length must be at least 1.")


@dataclass(frozen=True, slots=True)
class EmailSettings:
    """
    Outbound mail API configuration.

    :param api_url: Endpoint receiving the JSON mail payload.
    :param consumer_key: Credential sent in the ``consumerKey`` header.
    :param consumer_secret: Credential sent in the ``consumerSecret`` header.
    :param sender: ``from`` address.
    :param timeout_seconds: Per-request timeout.
    """

    api_url: str
    consumer_key: str
    consumer_secret: str
    sender: str
    timeout_seconds: float = 10.0

    @property
    def is_configured(self) -> bool:
        return bool(self.api_url and self.consumer_key and self.consumer_secret)


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y", "on"}
    return bool(value)


def auth_settings_from(config: Mapping[str, Any]) -> AuthSettings:
    """Build :class:`AuthSettings` from a Flask-style configuration mapping."""
    return AuthSettings(
        issuer=str(config.get("JWT_ISSUER", "mystorage-api")),
        audience=str(config.get("JWT_AUDIENCE", "mystorage-clients")),
        signing_key=str(config.get("JWT_SECRET_KEY", "")),
        algorithm=str(config.get("JWT_ALGORITHM", "HS256")),
        access_token_lifetime=timedelta(minutes=int(config.get("ACCESS_TOKEN_MINUTES", 15))),
        refresh_token_lifetime=timedelta(days=int(config.get("REFRESH_TOKEN_DAYS", 7))),
        max_refresh_tokens=int(config.get("MAX_REFRESH_TOKENS_PER_ACCOUNT", 5)),
        confirmation_token_lifetime=timedelta(
            hours=int(config.get("CONFIRMATION_TOKEN_HOURS", 24))
        ),
        reset_token_lifetime=timedelta(minutes=int(config.get("RESET_TOKEN_MINUTES", 60))),
        password_min_length=int(config.get("PASSWORD_MIN_LENGTH", 8)),
        password_require_digit=_flag(config.get("PASSWORD_REQUIRE_DIGIT", True)),
        password_require_lower=_flag(config.get("PASSWORD_REQUIRE_LOWER", True)),
        password_require_upper=_flag(config.get("PASSWORD_REQUIRE_UPPER", True)),
        password_require_symbol=_flag(config.get("PASSWORD_REQUIRE_SYMBOL", True)),
        base_url=str(config.get("APP_BASE_URL", "") or "").rstrip("/"),
    )


def email_settings_from(config: Mapping[str, Any]) -> EmailSettings:
    """Build :class:`EmailSettings` from a Flask-style configuration mapping."""
    return EmailSettings(
        api_url=str(config.get("EMAIL_API_URL", "") or ""),
        consumer_key=str(config.get("EMAIL_CONSUMER_KEY", "") or ""),
        consumer_secret=str(config.get("EMAIL_CONSUMER_SECRET", "") or ""),
        sender=str(config.get("EMAIL_SENDER", "") or ""),
        timeout_seconds=float(config.get("EMAIL_TIMEOUT_SECONDS", 10)),
    )
