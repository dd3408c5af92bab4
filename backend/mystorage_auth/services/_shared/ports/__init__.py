"""
mystorage_auth.services._shared.ports
=====================================

Collection of *ports* (hexagonal interfaces) that define the contracts for
session credentials and outbound notifications.

Modules
-------
- :mod:`token_codec`:
    Defines :class:`~.TokenCodec` with :class:`~.IssuedTokens` and
    :class:`~.AccessClaims`.

- :mod:`refresh_token_ledger`:
    Defines :class:`~.RefreshTokenLedger`, :class:`~.RefreshTokenView` and
    the lock-guarded :class:`~.InMemoryRefreshTokenLedger`.

- :mod:`email_gateway`:
    Defines :class:`~.EmailGateway`, :class:`~.SendResult` and the
    :class:`~.RecordingEmailGateway` double.

Concrete adapters live under ``mystorage_auth.infra``.
"""

from __future__ import annotations

from .email_gateway import EmailGateway, RecordingEmailGateway, SendResult, SentEmail
from .refresh_token_ledger import (
    InMemoryRefreshTokenLedger,
    RefreshTokenLedger,
    RefreshTokenView,
)
from .token_codec import AccessClaims, ClaimsSource, IssuedTokens, TokenCodec

__all__ = [
    "AccessClaims",
    "ClaimsSource",
    "EmailGateway",
    "InMemoryRefreshTokenLedger",
    "IssuedTokens",
    "RecordingEmailGateway",
    "RefreshTokenLedger",
    "RefreshTokenView",
    "SendResult",
    "SentEmail",
    "TokenCodec",
]
