"""
SQLAlchemy implementation of UnitOfWork for Flask.
"""

from __future__ import annotations

from contextlib import suppress

from sqlalchemy import event
from sqlalchemy.orm import Session, scoped_session

from mystorage_auth.core.extensions import db
from mystorage_auth.repositories import (
    AccountLogRepository,
    AccountRepository,
    AccountTokenRepository,
    RefreshTokenRepository,
)
from mystorage_auth.uow.base import UnitOfWork


class SQLAlchemyRepositoryContainer:
    """Provide repository instances that share a SQLAlchemy session."""

    def __init__(self, *, session: Session) -> None:
        self.session = session
        self.accounts = AccountRepository(session=self.session)
        self.account_tokens = AccountTokenRepository(session=self.session)
        self.account_logs = AccountLogRepository(session=self.session)
        self.refresh_tokens = RefreshTokenRepository(session=self.session)


class SQLAlchemyUnitOfWork(SQLAlchemyRepositoryContainer, UnitOfWork):
    """
    SQLAlchemy-backed UoW using the Flask-scoped session.

    The same session is shared across all repositories (and the SQL refresh
    token ledger) for a consistent transaction.
    """

    def __init__(self, session: Session | None = None) -> None:
        """Initialise the Unit of Work with a shared SQLAlchemy session.

        :param session: Explicit session; defaults to the Flask-scoped one.
        :type session: :class:`sqlalchemy.orm.Session` | None
        """
        super().__init__(session=session if session is not None else db.session)

    def __enter__(self) -> SQLAlchemyUnitOfWork:
        # No-op: the session is lazily started on the first statement.
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            try:
                self.commit()
            except Exception:
                self.rollback()
                raise
        else:
            self.rollback()

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


class SQLAlchemyReadOnlyUnitOfWork(SQLAlchemyRepositoryContainer, UnitOfWork):
    """
    Read-only Unit of Work backed by the Flask-scoped SQLAlchemy session.

    Installs a ``before_flush`` guard that rejects any pending
    insert/update/delete. When the scope started the transaction it also
    rolls it back on exit; when a transaction was already running (outer
    fixture or request scope) it attaches to it and leaves it untouched.
    ``commit()`` is disallowed.
    """

    def __init__(self, session: Session | scoped_session | None = None) -> None:
        session = session if session is not None else db.session
        # Transaction state and flush events live on the thread's real Session.
        if isinstance(session, scoped_session):
            session = session()
        super().__init__(session=session)
        self._guard_installed = False
        self._owns_transaction = False

    def __enter__(self) -> SQLAlchemyReadOnlyUnitOfWork:
        self._owns_transaction = not self.session.in_transaction()
        event.listen(self.session, "before_flush", _reject_writes)
        self._guard_installed = True
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if self._owns_transaction:
                self.rollback()
        finally:
            if self._guard_installed:
                with suppress(Exception):
                    event.remove(self.session, "before_flush", _reject_writes)
                self._guard_installed = False

    def commit(self) -> None:
        """
        Disallow commit in read-only Unit of Work.

        :raises RuntimeError: always, to prevent accidental writes.
        """
        raise RuntimeError("Read-only UnitOfWork does not allow commit().")

    def rollback(self) -> None:
        self.session.rollback()


def _reject_writes(session, flush_context, instances) -> None:
    if session.new or session.dirty or session.deleted:
        raise RuntimeError(
            "Read-only UnitOfWork: ORM flush blocked (new/dirty/deleted objects present)."
        )
