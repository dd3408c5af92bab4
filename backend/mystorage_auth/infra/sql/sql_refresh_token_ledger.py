"""Relational refresh-token ledger sharing the Unit of Work's session."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from mystorage_auth.models.refresh_token import RefreshToken
from mystorage_auth.repositories.refresh_token import RefreshTokenRepository
from mystorage_auth.services._shared.ports import RefreshTokenLedger, RefreshTokenView

log = logging.getLogger(__name__)


def _view(row: RefreshToken) -> RefreshTokenView:
    return RefreshTokenView(
        id=row.id,
        account_id=row.account_id,
        token_hash=row.token_hash,
        expires_at=row.expires_at,
        revoked=row.revoked,
    )


class SQLRefreshTokenLedger(RefreshTokenLedger):
    """
    Ledger over the ``refresh_tokens`` table.

    Nothing here commits. Run it on the session of the flow's Unit of Work so
    that consume, record and eviction land in a single transaction.

    :param max_per_account: Ceiling on rows kept per account.
    :type max_per_account: int
    :param session: Explicit session; ``None`` uses the Flask-scoped session.
    :type session: :class:`sqlalchemy.orm.Session` | None
    """

    def __init__(self, max_per_account: int, *, session: Session | None = None) -> None:
        if max_per_account < 1:
            raise ValueError("max_per_account must be >= 1")
        self.max_per_account = max_per_account
        self.repo = RefreshTokenRepository(session=session)

    def record(self, account_id: int, secret_hash: str, expires_at: datetime) -> None:
        self.repo.lock_owner(account_id)
        self.repo.add(
            RefreshToken(account_id=account_id, token_hash=secret_hash, expires_at=expires_at)
        )
        rows = self.repo.for_account(account_id)
        overflow = len(rows) - self.max_per_account
        if overflow > 0:
            for stale in rows[:overflow]:
                self.repo.session.delete(stale)
            self.repo.flush()
            log.info(
                "evicted %d refresh token(s) over ceiling",
                overflow,
                extra={"account_id": account_id},
            )

    def consume(
        self, account_id: int, secret_hash: str, now: datetime
    ) -> RefreshTokenView | None:
        if not self.repo.consume(account_id, secret_hash, now):
            return None
        row = self.repo.find_by_hash(account_id, secret_hash)
        return _view(row) if row is not None else None

    def revoke(self, account_id: int, secret_hash: str) -> bool:
        return self.repo.revoke(account_id, secret_hash)

    def revoke_all(self, account_id: int) -> int:
        return self.repo.revoke_all(account_id)

    def list_for_account(self, account_id: int) -> list[RefreshTokenView]:
        return [_view(row) for row in self.repo.for_account(account_id)]

    def prune_expired(self, now: datetime) -> int:
        return self.repo.delete_expired(now)
