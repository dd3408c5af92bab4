"""Single-use account tokens for email confirmation and password reset."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from mystorage_auth.core.extensions import db

from .base import CreatedAtMixin, PKMixin, ReprMixin, UTCDateTime


class TokenPurpose(str, Enum):
    """What an :class:`AccountToken` authorizes."""

    EMAIL_CONFIRMATION = "email_confirmation"
    PASSWORD_RESET = "password_reset"


class AccountToken(PKMixin, ReprMixin, CreatedAtMixin, db.Model):
    """
    Hashed, time-boxed token mailed to the account owner.

    At most one live token exists per (account, purpose). Issuing a new one
    replaces the previous row; consuming deletes it.
    """

    __tablename__ = "account_tokens"

    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    purpose: Mapped[TokenPurpose] = mapped_column(
        SAEnum(
            TokenPurpose,
            name="account_token_purpose",
            native_enum=False,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )
    token_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    __table_args__ = (
        UniqueConstraint("account_id", "purpose", name="uq_account_tokens_account_id_purpose"),
        Index("ix_account_tokens_token_hash", "token_hash"),
    )

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at
