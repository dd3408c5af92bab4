"""Append-only audit log repository."""

from __future__ import annotations

from mystorage_auth.models.account_log import AccountAction, AccountLog
from mystorage_auth.repositories.base import BaseRepository


class AccountLogRepository(BaseRepository[AccountLog]):
    model = AccountLog

    def _sortable_fields(self):
        return {"created_at": AccountLog.created_at}

    def _filterable_fields(self):
        return {"account_id": AccountLog.account_id, "action": AccountLog.action}

    def record(self, account_id: int, action: AccountAction) -> AccountLog:
        """Append one audit entry for the account.

        :param account_id: Account the action applies to.
        :type account_id: int
        :param action: What happened.
        :type action: AccountAction
        :rtype: AccountLog
        """
        return self.add(AccountLog(account_id=account_id, action=action))

    def for_account(self, account_id: int) -> list[AccountLog]:
        """Entries for one account, oldest first."""
        return self.list(filters={"account_id": account_id}, sort=["created_at"])
