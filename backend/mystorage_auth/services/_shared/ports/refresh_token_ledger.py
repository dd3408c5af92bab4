from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Protocol


@dataclass(frozen=True, slots=True)
class RefreshTokenView:
    """
    Read-model for one ledger entry.

    :ivar id: Entry identifier (insertion order).
    :ivar account_id: Owning account.
    :ivar token_hash: Digest of the refresh secret.
    :ivar expires_at: Absolute expiration (UTC).
    :ivar revoked: Whether the entry was consumed or revoked.
    """

    id: int
    account_id: int
    token_hash: str
    expires_at: datetime
    revoked: bool

    def is_active(self, now: datetime) -> bool:
        return not self.revoked and now < self.expires_at


class RefreshTokenLedger(Protocol):
    """
    Per-account, bounded collection of single-use refresh secrets.

    ``consume`` MUST be atomic: of any number of concurrent calls for the
    same live secret, exactly one succeeds.
    """

    def record(self, account_id: int, secret_hash: str, expires_at: datetime) -> None:
        """
        Append an entry, then evict oldest-by-expiry entries (ties by id)
        until the account holds at most the configured ceiling.
        """

    def consume(
        self, account_id: int, secret_hash: str, now: datetime
    ) -> RefreshTokenView | None:
        """
        Revoke a live entry and return its snapshot.

        :returns: The consumed entry, or ``None`` if it is unknown, expired,
            already revoked or owned by another account (never says which).
        """

    def revoke(self, account_id: int, secret_hash: str) -> bool:
        """Revoke one entry. :returns: True if a live entry was revoked."""

    def revoke_all(self, account_id: int) -> int:
        """Revoke every live entry of the account. :returns: entries affected."""

    def list_for_account(self, account_id: int) -> list[RefreshTokenView]:
        """All entries of the account, oldest expiry first."""

    def prune_expired(self, now: datetime) -> int:
        """Delete entries whose expiry has passed. :returns: entries removed."""


class InMemoryRefreshTokenLedger(RefreshTokenLedger):
    """
    In-memory ledger with the same ceiling and single-use semantics.

    .. note::
       A single lock guards every operation, which gives ``consume`` the
       same check-and-set atomicity the SQL ledger gets from one UPDATE.
    """

    def __init__(self, max_per_account: int) -> None:
        if max_per_account < 1:
            raise ValueError("max_per_account must be >= 1")
        self.max_per_account = max_per_account
        self._entries: dict[int, RefreshTokenView] = {}
        self._seq = 0
        self._lock = threading.Lock()

    def _for_account(self, account_id: int) -> list[RefreshTokenView]:
        rows = [v for v in self._entries.values() if v.account_id == account_id]
        return sorted(rows, key=lambda v: (v.expires_at, v.id))

    def record(self, account_id: int, secret_hash: str, expires_at: datetime) -> None:
        with self._lock:
            self._seq += 1
            self._entries[self._seq] = RefreshTokenView(
                id=self._seq,
                account_id=account_id,
                token_hash=secret_hash,
                expires_at=expires_at,
                revoked=False,
            )
            rows = self._for_account(account_id)
            for stale in rows[: max(0, len(rows) - self.max_per_account)]:
                del self._entries[stale.id]

    def consume(
        self, account_id: int, secret_hash: str, now: datetime
    ) -> RefreshTokenView | None:
        with self._lock:
            for entry in self._entries.values():
                if entry.account_id == account_id and entry.token_hash == secret_hash:
                    if not entry.is_active(now):
                        return None
                    consumed = replace(entry, revoked=True)
                    self._entries[entry.id] = consumed
                    return consumed
            return None

    def revoke(self, account_id: int, secret_hash: str) -> bool:
        with self._lock:
            for entry in self._entries.values():
                if (
                    entry.account_id == account_id
                    and entry.token_hash == secret_hash
                    and not entry.revoked
                ):
                    self._entries[entry.id] = replace(entry, revoked=True)
                    return True
            return False

    def revoke_all(self, account_id: int) -> int:
        with self._lock:
            live = [
                e for e in self._entries.values() if e.account_id == account_id and not e.revoked
            ]
            for entry in live:
                self._entries[entry.id] = replace(entry, revoked=True)
            return len(live)

    def list_for_account(self, account_id: int) -> list[RefreshTokenView]:
        with self._lock:
            return self._for_account(account_id)

    def prune_expired(self, now: datetime) -> int:
        with self._lock:
            expired = [key for key, e in self._entries.items() if e.expires_at <= now]
            for key in expired:
                del self._entries[key]
            return len(expired)
