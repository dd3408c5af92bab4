from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol


@dataclass(frozen=True, slots=True)
class IssuedTokens:
    """
    Freshly minted credential pair.

    :ivar access_token: Signed, self-describing access JWT.
    :ivar refresh_token: Opaque high-entropy secret (plaintext, client copy only).
    :ivar access_expires_at: Absolute access-token expiry (UTC).
    :ivar refresh_expires_at: Absolute refresh-token expiry (UTC).
    """

    access_token: str
    refresh_token: str
    access_expires_at: datetime
    refresh_expires_at: datetime


@dataclass(frozen=True, slots=True)
class AccessClaims:
    """Fixed set of claims read back from a verified access token."""

    subject_id: int
    email: str
    display_name: str
    expires_at: datetime


class ClaimsSource(Protocol):
    """What the codec needs to know about an account to mint a token."""

    id: int
    email: str

    @property
    def claim_name(self) -> str: ...


class TokenCodec(Protocol):
    """Port for minting and verifying session credentials."""

    def issue(self, account: ClaimsSource) -> IssuedTokens:
        """Mint an access JWT and a refresh secret for ``account``."""

    def verify_access_token(
        self, token: str, *, ignore_expiry: bool = False
    ) -> AccessClaims | None:
        """
        Verify signature, algorithm, issuer, audience and structure.

        :param token: Compact JWT.
        :param ignore_expiry: Skip only the ``exp`` check (refresh flow).
        :returns: Claims, or ``None`` when the token is not acceptable.
        """

    def hash_secret(self, secret: str) -> str:
        """Digest used to store secrets at rest."""
