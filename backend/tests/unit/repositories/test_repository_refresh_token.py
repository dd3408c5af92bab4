"""Unit tests for :class:`RefreshTokenRepository`."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from mystorage_auth.repositories import RefreshTokenRepository
from tests.factories.account import AccountFactory
from tests.factories.refresh_token import RefreshTokenFactory


@pytest.fixture()
def repo(session) -> RefreshTokenRepository:
    return RefreshTokenRepository(session=session)


def _now() -> datetime:
    return datetime.now(UTC)


def test_for_account_orders_by_expiry_then_id(repo):
    account = AccountFactory()
    later = RefreshTokenFactory(account=account, expires_at=_now() + timedelta(days=3))
    sooner = RefreshTokenFactory(account=account, expires_at=_now() + timedelta(days=1))
    RefreshTokenFactory()  # another account

    assert [row.id for row in repo.for_account(account.id)] == [sooner.id, later.id]


def test_consume_is_single_use(repo):
    row = RefreshTokenFactory()

    assert repo.consume(row.account_id, row.token_hash, _now()) is True
    assert repo.consume(row.account_id, row.token_hash, _now()) is False
    assert repo.find_by_hash(row.account_id, row.token_hash).revoked is True


def test_consume_rejects_expired_and_foreign_rows(repo):
    expired = RefreshTokenFactory(expires_at=_now() - timedelta(seconds=1))
    live = RefreshTokenFactory()
    stranger = AccountFactory()

    assert repo.consume(expired.account_id, expired.token_hash, _now()) is False
    assert repo.consume(stranger.id, live.token_hash, _now()) is False
    assert repo.find_by_hash(live.account_id, live.token_hash).revoked is False


def test_revoke_and_revoke_all(repo):
    account = AccountFactory()
    first = RefreshTokenFactory(account=account)
    RefreshTokenFactory(account=account)
    RefreshTokenFactory(account=account)

    assert repo.revoke(account.id, first.token_hash) is True
    assert repo.revoke(account.id, first.token_hash) is False
    assert repo.revoke_all(account.id) == 2
    assert all(row.revoked for row in repo.for_account(account.id))


def test_delete_expired(repo):
    account = AccountFactory()
    RefreshTokenFactory(account=account, expires_at=_now() - timedelta(minutes=1))
    keep = RefreshTokenFactory(account=account)

    assert repo.delete_expired(_now()) == 1
    assert [row.id for row in repo.for_account(account.id)] == [keep.id]
