"""Shared API helpers: service wiring, auth guards and response helpers."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar, cast

from flask import Flask, Response, current_app, jsonify, request, url_for
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request

from mystorage_auth.core.errors import APIError, Unauthorized
from mystorage_auth.core.logger import ensure_request_id
from mystorage_auth.core.settings import AuthSettings, auth_settings_from, email_settings_from
from mystorage_auth.infra.jwt.jwt_token_codec import JWTTokenCodec
from mystorage_auth.infra.mail.http_email_gateway import HttpEmailGateway
from mystorage_auth.infra.sql.sql_refresh_token_ledger import SQLRefreshTokenLedger
from mystorage_auth.services._shared.base import ServiceContext
from mystorage_auth.services._shared.dto import Outcome
from mystorage_auth.services._shared.ports import EmailGateway, RefreshTokenLedger, TokenCodec
from mystorage_auth.services.auth.service import AuthService

F = TypeVar("F", bound=Callable[..., Any])
T = TypeVar("T")

EXTENSION_KEY = "mystorage_auth"


@dataclass(frozen=True, slots=True)
class AuthComponents:
    """Process-wide collaborators shared by every request's ``AuthService``."""

    settings: AuthSettings
    token_codec: TokenCodec
    ledger: RefreshTokenLedger
    email_gateway: EmailGateway


def init_app(app: Flask, *, email_gateway: EmailGateway | None = None) -> AuthComponents:
    """Build the auth collaborators from ``app.config`` and store them on the app.

    Parameters
    ----------
    app:
        Application whose configuration is snapshotted.
    email_gateway:
        Optional gateway override (tests pass a recording double).
    """
    settings = auth_settings_from(app.config)
    components = AuthComponents(
        settings=settings,
        token_codec=JWTTokenCodec(settings),
        ledger=SQLRefreshTokenLedger(settings.max_refresh_tokens),
        email_gateway=email_gateway or HttpEmailGateway(email_settings_from(app.config)),
    )
    app.extensions[EXTENSION_KEY] = components
    return components


def auth_components() -> AuthComponents:
    return cast(AuthComponents, current_app.extensions[EXTENSION_KEY])


def get_auth_service() -> AuthService:
    """Return an ``AuthService`` bound to the current request context."""
    components = auth_components()
    return AuthService(
        settings=components.settings,
        token_codec=components.token_codec,
        ledger=components.ledger,
        email_gateway=components.email_gateway,
        ctx=ServiceContext(request_id=ensure_request_id(), client_ip=request.remote_addr),
    )


def link_base_url() -> str:
    """Base URL for emailed links.

    ``APP_BASE_URL`` when configured, otherwise the external URL of the auth
    blueprint serving this request (e.g. ``http://host/api/v1/auth``).
    """
    configured = auth_components().settings.base_url
    if configured:
        return configured
    return url_for("auth.confirm_email", _external=True).rsplit("/", 1)[0]


def bearer_token() -> str:
    """Return the raw bearer token from the ``Authorization`` header.

    :raises Unauthorized: When the header is missing or not a bearer token.
    """
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthorized("Missing or malformed bearer token.")
    return token.strip()


def require_auth(func: F) -> F:
    """Ensure the request carries a valid, unexpired JWT access token."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        verify_jwt_in_request(optional=False)
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def current_account_id() -> int:
    """Account id of the verified access token (call inside ``require_auth``)."""
    return int(get_jwt_identity())


def unwrap(outcome: Outcome[T]) -> T | None:
    """Return the outcome's value or raise the matching :class:`APIError`."""
    if outcome.error is not None:
        raise APIError.from_failure(outcome.error)
    return outcome.value


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request.endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]
