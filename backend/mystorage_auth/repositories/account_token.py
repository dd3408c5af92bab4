"""Repository for single-use confirmation and reset tokens."""

from __future__ import annotations

from datetime import datetime
from typing import cast

from sqlalchemy import select

from mystorage_auth.models.account_token import AccountToken, TokenPurpose
from mystorage_auth.repositories.base import BaseRepository


class AccountTokenRepository(BaseRepository[AccountToken]):
    """Store at most one live token per (account, purpose)."""

    model = AccountToken

    def find_for(self, account_id: int, purpose: TokenPurpose) -> AccountToken | None:
        """Return the live token row of ``purpose`` for the account, if any.

        :param account_id: Owning account id.
        :type account_id: int
        :param purpose: Token purpose.
        :type purpose: TokenPurpose
        :rtype: AccountToken | None
        """
        stmt = select(AccountToken).where(
            AccountToken.account_id == account_id,
            AccountToken.purpose == purpose,
        )
        return cast(AccountToken | None, self.session.execute(stmt).scalars().first())

    def replace(
        self,
        account_id: int,
        purpose: TokenPurpose,
        *,
        token_hash: str,
        expires_at: datetime,
    ) -> AccountToken:
        """Drop any previous token of ``purpose`` and store a new one.

        :param account_id: Owning account id.
        :type account_id: int
        :param purpose: Token purpose.
        :type purpose: TokenPurpose
        :param token_hash: SHA-256 hex digest of the mailed token.
        :type token_hash: str
        :param expires_at: Absolute expiry (UTC).
        :type expires_at: datetime
        :returns: The new, flushed row.
        :rtype: AccountToken
        """
        self.discard(account_id, purpose)
        return self.add(
            AccountToken(
                account_id=account_id,
                purpose=purpose,
                token_hash=token_hash,
                expires_at=expires_at,
            )
        )

    def discard(self, account_id: int, purpose: TokenPurpose) -> int:
        """Delete the token of ``purpose`` for the account; return rows removed."""
        existing = self.find_for(account_id, purpose)
        if existing is None:
            return 0
        self.delete(existing)
        return 1
