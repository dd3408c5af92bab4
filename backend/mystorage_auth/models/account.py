"""Account model: the credential store of the identity service."""

from __future__ import annotations

from typing import Any

from sqlalchemy import Boolean, Index, String, UniqueConstraint, false, true
from sqlalchemy.orm import Mapped, mapped_column, validates
from werkzeug.security import check_password_hash, generate_password_hash

from mystorage_auth.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin

# Pre-computed hash compared against when no account matches a login attempt,
# so unknown and known emails cost the same hashing work.
_DUMMY_PASSWORD_HASH = generate_password_hash("mystorage-dummy-password")


def normalize_email(value: str) -> str:
    """Return the canonical (trimmed, lowercased) form of an email address."""
    return value.strip().lower()


class Account(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    Identity record used for authentication.

    Fields
    ------
    email : str
        Login email. Stored normalized (lowercase, trimmed) so uniqueness is
        case-insensitive.
    password_hash : str
        Hashed password (write-only setter via ``password``).
    display_name : str | None
        Optional human-readable name; token claims fall back to the email.
    email_confirmed : bool
        ``False`` while the account is pending confirmation.
    is_active : bool
        Deactivated accounts never authenticate; rows are never deleted here.
    """

    __tablename__ = "accounts"

    email: Mapped[str] = mapped_column(String(254), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(254), nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    email_confirmed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )

    __table_args__ = (
        UniqueConstraint("email", name="uq_accounts_email"),
        Index("ix_accounts_email", "email"),
    )

    # -------------------- Password API --------------------
    @property
    def password(self) -> Any:  # pragma: no cover - explicit write-only contract
        """
        Disallow reading passwords.

        :raises AttributeError: Always, to ensure password is write-only.
        """
        raise AttributeError("Password is write-only.")

    @password.setter
    def password(self, raw: str) -> None:
        """
        Hash and set the password.

        :param raw: Plain text password to hash.
        :type raw: str
        """
        if not isinstance(raw, str) or not raw:
            raise ValueError("Password must be a non-empty string.")
        self.password_hash = generate_password_hash(raw)

    def verify_password(self, raw: str) -> bool:
        """
        Verify a password against the stored hash.

        :param raw: Plain text password candidate.
        :type raw: str
        :returns: ``True`` if it matches; otherwise ``False``.
        :rtype: bool
        """
        if not self.password_hash:
            return False
        return bool(check_password_hash(self.password_hash, raw))

    @staticmethod
    def burn_password_check(raw: str) -> None:
        """Run a hash comparison against a dummy hash and discard the result."""
        check_password_hash(_DUMMY_PASSWORD_HASH, raw)

    # -------------------- State --------------------
    @property
    def can_authenticate(self) -> bool:
        """``True`` only for confirmed and active accounts."""
        return bool(self.email_confirmed and self.is_active)

    @property
    def claim_name(self) -> str:
        """Name written into access-token claims."""
        return self.display_name or self.email

    # -------------------- Validators --------------------
    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        """
        Normalize and validate email.

        :param key: Field name (``email``).
        :type key: str
        :param value: Email to normalize.
        :type value: str
        :returns: Normalized email (lowercased/trimmed).
        :rtype: str
        :raises ValueError: If email is missing or malformed.
        """
        if not value or not isinstance(value, str):
            raise ValueError("Email is required.")
        v = normalize_email(value)
        if "@" not in v or "." not in v.split("@")[-1]:
            raise ValueError("Email format looks invalid.")
        return v

    @validates("display_name")
    def _normalize_display_name(self, key: str, value: str | None) -> str | None:
        if value is None:
            return None
        v = value.strip()
        return v or None
