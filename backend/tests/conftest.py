"""Pytest fixtures configuring an isolated transactional database layer.

Each test runs inside a SAVEPOINT-backed transaction against an in-memory
SQLite database so data changes never leak between cases. Outbound mail is
captured by a :class:`RecordingEmailGateway` instead of hitting the network.
"""

from __future__ import annotations

import os
from datetime import timedelta

import pytest
from mystorage_auth.core.config import TestingConfig
from mystorage_auth.core.extensions import db as _db  # Flask-SQLAlchemy instance
from mystorage_auth.core.settings import AuthSettings
from mystorage_auth.factory import create_app  # application factory under test
from mystorage_auth.infra.jwt.jwt_token_codec import JWTTokenCodec
from mystorage_auth.infra.sql.sql_refresh_token_ledger import SQLRefreshTokenLedger
from mystorage_auth.services._shared.ports import RecordingEmailGateway
from mystorage_auth.services.auth.service import AuthService
from sqlalchemy import event
from sqlalchemy.orm import scoped_session, sessionmaker

MAX_REFRESH_TOKENS = 3


@pytest.fixture(scope="session")
def mail_outbox():
    """Recording gateway shared by the app and the service fixtures."""
    return RecordingEmailGateway()


@pytest.fixture(scope="session")
def app(mail_outbox):
    """Create a Flask application configured for testing.

    Returns
    -------
    flask.Flask
        Application instance with :class:`TestingConfig` applied, the
        recording mail gateway installed and logging noise reduced.
    """
    # Ensure env-based config does not leak into tests
    os.environ.pop("DATABASE_URL", None)
    app = create_app(TestingConfig, email_gateway=mail_outbox)
    app.logger.setLevel("WARNING")
    return app


@pytest.fixture(scope="session")
def db(app):
    """Create database tables once per test session.

    Parameters
    ----------
    app: flask.Flask
        Application fixture ensuring the Flask context is available.

    Yields
    ------
    flask_sqlalchemy.SQLAlchemy
        Database extension bound to the testing application.
    """
    with app.app_context():
        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope="session")
def connection(db):
    """Keep a dedicated DBAPI connection open for the whole session."""
    conn = db.engine.connect()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="function")
def session(db, connection):
    """Provide a SQLAlchemy session wrapped in a nested transaction.

    Notes
    -----
    The fixture mirrors the SQLAlchemy 2.0 pattern for transactional tests: it
    begins a top-level transaction, starts a SAVEPOINT per test, and reinstalls
    the SAVEPOINT whenever SQLAlchemy ends one. Units of Work therefore
    "commit" into the SAVEPOINT and everything is rolled back afterwards.
    """
    # 1) Top-level transaction
    top_trans = connection.begin()

    # 2) Scoped session bound to the connection
    SessionFactory = sessionmaker(bind=connection, future=True)
    scoped = scoped_session(SessionFactory)

    # 3) SAVEPOINT per test
    nested = connection.begin_nested()

    # 4) Re-create SAVEPOINT when the previous nested transaction ends
    @event.listens_for(scoped(), "after_transaction_end")
    def _restart_savepoint(sess, trans):  # pragma: no cover
        if trans.nested and not trans._parent.nested:
            nonlocal nested
            nested = connection.begin_nested()

    # 5) Swap db.session so app code uses this scoped session
    original_session = db.session
    db.session.remove()
    db.session = scoped

    try:
        yield scoped
    finally:
        scoped.remove()
        db.session = original_session
        top_trans.rollback()


@pytest.fixture(autouse=True)
def _reset_outbox(mail_outbox):
    """Start every test with an empty, working mail gateway."""
    mail_outbox.outbox.clear()
    mail_outbox.fail = False
    yield


@pytest.fixture()
def settings() -> AuthSettings:
    """Token settings with a small per-account refresh-token ceiling."""
    return AuthSettings(
        issuer="mystorage-tests",
        audience="mystorage-test-clients",
        signing_key="unit-test-signing-key-with-enough-entropy",
        access_token_lifetime=timedelta(minutes=15),
        refresh_token_lifetime=timedelta(days=7),
        max_refresh_tokens=MAX_REFRESH_TOKENS,
        base_url="https://app.test",
    )


@pytest.fixture()
def codec(settings) -> JWTTokenCodec:
    return JWTTokenCodec(settings)


@pytest.fixture()
def ledger(settings, session) -> SQLRefreshTokenLedger:
    """SQL ledger resolving the swapped, transactional ``db.session``."""
    return SQLRefreshTokenLedger(settings.max_refresh_tokens)


@pytest.fixture()
def service(settings, codec, ledger, mail_outbox) -> AuthService:
    """AuthService wired to the SQL ledger and the recording mail gateway."""
    return AuthService(
        settings=settings,
        token_codec=codec,
        ledger=ledger,
        email_gateway=mail_outbox,
    )


@pytest.fixture()
def client(app, session):
    """Flask test client sharing the transactional session."""
    return app.test_client()


@pytest.fixture(scope="session")
def faker():
    """Provide a :class:`faker.Faker` instance seeded for deterministic tests."""
    from faker import Faker

    fk = Faker()
    Faker.seed(1337)
    return fk


# -- Hook up Factory Boy to pytest SQLAlchemy session --------------------------
@pytest.fixture(autouse=True)
def _factories_session(session):
    """Wire Factory Boy's session helper to the transactional session fixture."""
    from tests.factories import SQLAlchemySession

    SQLAlchemySession.set(session)
    yield
