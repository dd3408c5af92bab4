"""Per-account audit trail of security-relevant actions."""

from __future__ import annotations

from enum import Enum

from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from mystorage_auth.core.extensions import db

from .base import CreatedAtMixin, PKMixin, ReprMixin


class AccountAction(str, Enum):
    LOGIN = "login"
    FAILED_LOGIN = "failed_login"
    LOGOUT = "logout"
    PASSWORD_RESET = "password_reset"
    PASSWORD_CHANGED = "password_changed"
    EMAIL_CONFIRMED = "email_confirmed"


class AccountLog(PKMixin, ReprMixin, CreatedAtMixin, db.Model):
    """Append-only record of one action taken on an account."""

    __tablename__ = "account_logs"

    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    action: Mapped[AccountAction] = mapped_column(
        SAEnum(
            AccountAction,
            name="account_action",
            native_enum=False,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )

    __table_args__ = (Index("ix_account_logs_account_id_created_at", "account_id", "created_at"),)
