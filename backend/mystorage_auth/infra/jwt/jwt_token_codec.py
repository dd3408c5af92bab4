"""PyJWT-backed token codec: HS256 access tokens plus opaque refresh secrets."""

from __future__ import annotations

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

import jwt

from mystorage_auth.core.settings import AuthSettings
from mystorage_auth.services._shared.ports import (
    AccessClaims,
    ClaimsSource,
    IssuedTokens,
    TokenCodec,
)

log = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"
REQUIRED_CLAIMS = ["iss", "aud", "sub", "iat", "nbf", "exp", "jti", "type", "email", "name"]
REFRESH_SECRET_BYTES = 64


@dataclass(slots=True)
class JWTTokenCodec(TokenCodec):
    """
    Mint and verify session credentials.

    Access tokens are signed with ``settings.signing_key`` using exactly one
    algorithm; the same algorithm list is the only one accepted on decode, so
    ``alg=none`` and algorithm-confusion tokens are rejected by PyJWT.

    .. note::
       Pure with respect to external state: no database or network access.
    """

    settings: AuthSettings

    # ------------------------------ issue -----------------------------------

    def issue(self, account: ClaimsSource) -> IssuedTokens:
        """
        Mint an access JWT and a refresh secret.

        :param account: Account supplying ``id``, ``email`` and ``claim_name``.
        :type account: ClaimsSource
        :returns: Both credentials and their absolute expiries.
        :rtype: IssuedTokens
        """
        now = datetime.now(UTC).replace(microsecond=0)
        access_expires_at = now + self.settings.access_token_lifetime
        refresh_expires_at = now + self.settings.refresh_token_lifetime
        payload: dict[str, Any] = {
            "iss": self.settings.issuer,
            "aud": self.settings.audience,
            "sub": str(account.id),
            "email": account.email,
            "name": account.claim_name,
            "iat": int(now.timestamp()),
            "nbf": int(now.timestamp()),
            "exp": int(access_expires_at.timestamp()),
            "jti": uuid4().hex,
            "type": ACCESS_TOKEN_TYPE,
        }
        access_token = jwt.encode(
            payload, self.settings.signing_key, algorithm=self.settings.algorithm
        )
        return IssuedTokens(
            access_token=access_token,
            refresh_token=secrets.token_urlsafe(REFRESH_SECRET_BYTES),
            access_expires_at=access_expires_at,
            refresh_expires_at=refresh_expires_at,
        )

    # ------------------------------ verify ----------------------------------

    def verify_access_token(
        self, token: str, *, ignore_expiry: bool = False
    ) -> AccessClaims | None:
        """
        Validate an access token and return its claims.

        :param token: Compact JWT.
        :type token: str
        :param ignore_expiry: Skip only the ``exp`` check (used by refresh).
        :type ignore_expiry: bool
        :returns: Claims, or ``None`` on any validation failure.
        :rtype: AccessClaims | None
        """
        if not token:
            return None
        try:
            decoded = jwt.decode(
                token,
                self.settings.signing_key,
                algorithms=[self.settings.algorithm],
                audience=self.settings.audience,
                issuer=self.settings.issuer,
                options={"require": REQUIRED_CLAIMS, "verify_exp": not ignore_expiry},
            )
        except jwt.InvalidTokenError as exc:
            log.debug("access token rejected: %s", exc.__class__.__name__)
            return None

        if decoded.get("type") != ACCESS_TOKEN_TYPE:
            log.debug("access token rejected: wrong type")
            return None
        try:
            subject_id = int(decoded["sub"])
            expires_at = datetime.fromtimestamp(int(decoded["exp"]), tz=UTC)
        except (TypeError, ValueError):
            log.debug("access token rejected: malformed sub/exp")
            return None
        return AccessClaims(
            subject_id=subject_id,
            email=str(decoded["email"]),
            display_name=str(decoded["name"]),
            expires_at=expires_at,
        )

    # ------------------------------ hashing ---------------------------------

    def hash_secret(self, secret: str) -> str:
        """Return the SHA-256 hex digest of ``secret``."""
        return hashlib.sha256(secret.encode("utf-8")).hexdigest()
