"""Repository package exposing persistence-layer access for identity models."""

from __future__ import annotations

from mystorage_auth.repositories.account import AccountRepository
from mystorage_auth.repositories.account_log import AccountLogRepository
from mystorage_auth.repositories.account_token import AccountTokenRepository
from mystorage_auth.repositories.base import BaseRepository, parse_sort_tokens
from mystorage_auth.repositories.refresh_token import RefreshTokenRepository

__all__ = [
    "BaseRepository",
    "parse_sort_tokens",
    "AccountRepository",
    "AccountLogRepository",
    "AccountTokenRepository",
    "RefreshTokenRepository",
]
