"""Account repository: credential-store operations."""

from __future__ import annotations

from typing import cast

from sqlalchemy import select

from mystorage_auth.models.account import Account, normalize_email
from mystorage_auth.repositories.base import BaseRepository


class AccountRepository(BaseRepository[Account]):
    """Persistence-only repository for :class:`Account`.

    It NEVER issues tokens or sends mail; it only manages account rows and
    their password hashes.
    """

    model = Account

    def _sortable_fields(self):
        return {
            "id": Account.id,
            "email": Account.email,
            "created_at": Account.created_at,
        }

    def _filterable_fields(self):
        return {
            "email": Account.email,
            "email_confirmed": Account.email_confirmed,
            "is_active": Account.is_active,
        }

    def _updatable_fields(self):
        """Publicly allowed updatable fields (not including password)."""
        return {"display_name", "is_active"}

    # ---------------------------- Creation ----------------------------

    def create_account(
        self, email: str, password: str, *, display_name: str | None = None
    ) -> Account:
        """Insert a pending (unconfirmed, active) account.

        :param email: Email address; normalized by the model.
        :type email: str
        :param password: Raw password; hashed by the model.
        :type password: str
        :param display_name: Optional display name.
        :type display_name: str | None
        :returns: The flushed account with its id populated.
        :rtype: Account
        :raises sqlalchemy.exc.IntegrityError: If the email is already taken.
        """
        account = Account(email=email, display_name=display_name)
        account.password = password
        return self.add(account)

    # ---------------------------- Lookup helpers ----------------------------

    def get_by_email(self, email: str) -> Account | None:
        """Fetch an account by email (case-insensitive).

        :param email: Email address to normalise and search.
        :type email: str
        :returns: Account instance or ``None`` when not found.
        :rtype: Account | None
        """
        stmt = select(Account).where(Account.email == normalize_email(email))
        return cast(Account | None, self.session.execute(stmt).scalars().first())

    def exists_by_email(self, email: str) -> bool:
        stmt = select(Account.id).where(Account.email == normalize_email(email))
        return bool(self.session.execute(stmt).first())

    # ---------------------------- Password / state ----------------------------

    def verify_password(self, account: Account, password: str) -> bool:
        """Return ``True`` when ``password`` matches the account's hash."""
        return account.verify_password(password)

    def update_password(self, account_id: int, new_password: str) -> None:
        """Replace an account's password hash and flush.

        :param account_id: Identifier of the account.
        :type account_id: int
        :param new_password: Raw password; the model handles hashing.
        :type new_password: str
        :raises ValueError: If the account does not exist.
        """
        account = self.get(account_id)
        if not account:
            raise ValueError(f"Account {account_id} not found.")
        account.password = new_password
        self.flush()

    def set_confirmed(self, account_id: int) -> None:
        """Mark an account's email as confirmed and flush.

        :raises ValueError: If the account does not exist.
        """
        account = self.get(account_id)
        if not account:
            raise ValueError(f"Account {account_id} not found.")
        account.email_confirmed = True
        self.flush()
