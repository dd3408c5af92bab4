"""Flask CLI commands for refresh-token housekeeping."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

import click
from flask import current_app
from flask.cli import with_appcontext
from sqlalchemy.exc import SQLAlchemyError

from mystorage_auth.core.extensions import db
from mystorage_auth.core.settings import auth_settings_from
from mystorage_auth.infra.sql.sql_refresh_token_ledger import SQLRefreshTokenLedger

LOGGER = logging.getLogger(__name__)


@click.group("tokens")
def tokens_cli() -> None:
    """Refresh-token maintenance commands."""


@tokens_cli.command("prune")
@with_appcontext
def prune_command() -> None:
    """Delete refresh tokens whose expiry has passed."""
    ledger = SQLRefreshTokenLedger(auth_settings_from(current_app.config).max_refresh_tokens)
    try:
        removed = ledger.prune_expired(datetime.now(UTC))
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise click.ClickException(f"Pruning failed: {exc}") from exc
    LOGGER.info("pruned %d expired refresh token(s)", removed)
    click.echo(f"Removed {removed} expired refresh token(s).")
