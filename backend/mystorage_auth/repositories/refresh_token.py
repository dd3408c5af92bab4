"""Refresh-token rows: bounded per account, consumed atomically."""

from __future__ import annotations

from datetime import datetime
from typing import cast

from sqlalchemy import delete, false, select, update

from mystorage_auth.models.account import Account
from mystorage_auth.models.refresh_token import RefreshToken
from mystorage_auth.repositories.base import BaseRepository

# Bulk statements skip identity-map synchronization; reads below use
# ``populate_existing`` so loaded rows always reflect the database.
_NO_SYNC = {"synchronize_session": False}


class RefreshTokenRepository(BaseRepository[RefreshToken]):
    """Persistence-only repository for :class:`RefreshToken`.

    Every mutating method is a single SQL statement so that callers sharing a
    transaction get database-level atomicity for the conditional consume.
    """

    model = RefreshToken

    def lock_owner(self, account_id: int) -> None:
        """Take a row lock on the owning account until the transaction ends.

        Concurrent writers for one account queue here, so a count taken after
        the lock sees every row committed before it. SQLite has no row locks;
        its single-writer lock already serializes the writers.

        :param account_id: Owning account id.
        :type account_id: int
        """
        stmt = select(Account.id).where(Account.id == account_id).with_for_update()
        self.session.execute(stmt)

    def for_account(self, account_id: int) -> list[RefreshToken]:
        """All rows of an account ordered by expiry, then id (oldest first).

        :param account_id: Owning account id.
        :type account_id: int
        :rtype: list[RefreshToken]
        """
        stmt = (
            select(RefreshToken)
            .where(RefreshToken.account_id == account_id)
            .order_by(RefreshToken.expires_at.asc(), RefreshToken.id.asc())
            .execution_options(populate_existing=True)
        )
        return list(self.session.execute(stmt).scalars().all())

    def find_by_hash(self, account_id: int, token_hash: str) -> RefreshToken | None:
        stmt = (
            select(RefreshToken)
            .where(
                RefreshToken.account_id == account_id,
                RefreshToken.token_hash == token_hash,
            )
            .execution_options(populate_existing=True)
        )
        return cast(RefreshToken | None, self.session.execute(stmt).scalars().first())

    def consume(self, account_id: int, token_hash: str, now: datetime) -> bool:
        """Revoke the row iff it is still live; ``True`` when exactly one row changed.

        :param account_id: Owning account id.
        :type account_id: int
        :param token_hash: Digest of the presented secret.
        :type token_hash: str
        :param now: Reference instant (UTC) for the expiry check.
        :type now: datetime
        :rtype: bool
        """
        stmt = (
            update(RefreshToken)
            .where(
                RefreshToken.account_id == account_id,
                RefreshToken.token_hash == token_hash,
                RefreshToken.revoked == false(),
                RefreshToken.expires_at > now,
            )
            .values(revoked=True)
        )
        result = self.session.execute(stmt, execution_options=_NO_SYNC)
        return result.rowcount == 1

    def revoke(self, account_id: int, token_hash: str) -> bool:
        stmt = (
            update(RefreshToken)
            .where(
                RefreshToken.account_id == account_id,
                RefreshToken.token_hash == token_hash,
                RefreshToken.revoked == false(),
            )
            .values(revoked=True)
        )
        return bool(self.session.execute(stmt, execution_options=_NO_SYNC).rowcount)

    def revoke_all(self, account_id: int) -> int:
        """Revoke every unrevoked row of the account; return rows affected."""
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.account_id == account_id, RefreshToken.revoked == false())
            .values(revoked=True)
        )
        return int(self.session.execute(stmt, execution_options=_NO_SYNC).rowcount or 0)

    def delete_expired(self, now: datetime) -> int:
        """Delete rows whose expiry has passed; return rows removed."""
        stmt = delete(RefreshToken).where(RefreshToken.expires_at <= now)
        result = self.session.execute(stmt, execution_options=_NO_SYNC)
        return int(result.rowcount or 0)
