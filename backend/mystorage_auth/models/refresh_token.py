"""Persisted refresh-token ledger rows."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint, false
from sqlalchemy.orm import Mapped, mapped_column

from mystorage_auth.core.extensions import db

from .base import CreatedAtMixin, PKMixin, ReprMixin, UTCDateTime


class RefreshToken(PKMixin, ReprMixin, CreatedAtMixin, db.Model):
    """
    One issued refresh secret, stored as a SHA-256 digest.

    A row is exchangeable iff it is not revoked and ``expires_at`` lies in the
    future. Revoked rows remain until the per-account ceiling evicts them.

    Fields
    ------
    account_id : int
        Owning account.
    token_hash : str
        Hex SHA-256 of the opaque secret handed to the client.
    expires_at : datetime
        Absolute expiry (UTC).
    revoked : bool
        Set when the secret is consumed or explicitly revoked.
    """

    __tablename__ = "refresh_tokens"

    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    token_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    revoked: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    __table_args__ = (
        UniqueConstraint("token_hash", name="uq_refresh_tokens_token_hash"),
        Index("ix_refresh_tokens_account_id_expires_at", "account_id", "expires_at"),
    )

    def is_active(self, now: datetime) -> bool:
        """
        Return ``True`` when the token can still be exchanged.

        :param now: Reference instant (UTC).
        :type now: datetime
        :rtype: bool
        """
        return not self.revoked and now < self.expires_at
