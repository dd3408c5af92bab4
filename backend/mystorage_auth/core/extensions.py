"""Global Flask extension instances and initialization helpers."""

from __future__ import annotations

from flask import Flask
from flask_jwt_extended import JWTManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import MetaData

# Global naming convention for all constraints
convention = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)

# Global singletons (import-safe)
db: SQLAlchemy = SQLAlchemy(session_options={"autoflush": False}, metadata=metadata)
migrate = Migrate(render_as_batch=True)
jwt = JWTManager()


def init_app(app: Flask) -> None:
    """Initialize SQLAlchemy, migrations, and JWT extensions.

    Parameters
    ----------
    app: flask.Flask
        Application used to bind extension instances. This call imports the
        :mod:`mystorage_auth.models` package to ensure SQLAlchemy metadata is
        ready for migrations.

    Notes
    -----
    Flask-JWT-Extended only *verifies* bearer tokens at the HTTP boundary;
    the tokens themselves are minted by the service-layer token codec, so the
    decode settings are aligned with the issuer/audience written by it.
    """
    db.init_app(app)

    # Ensure models are imported so Alembic sees metadata
    from mystorage_auth import models as _models  # noqa: F401

    migrate.init_app(app, db)

    app.config.setdefault("JWT_DECODE_ISSUER", app.config.get("JWT_ISSUER"))
    app.config.setdefault("JWT_DECODE_AUDIENCE", app.config.get("JWT_AUDIENCE"))
    app.config.setdefault("JWT_DECODE_ALGORITHMS", [app.config.get("JWT_ALGORITHM", "HS256")])
    jwt.init_app(app)
