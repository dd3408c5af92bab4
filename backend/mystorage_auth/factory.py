"""Application factory wiring Flask extensions and blueprints."""

from __future__ import annotations

from flask import Flask

from mystorage_auth.core.config import BaseConfig, get_config
from mystorage_auth.core.logger import configure_logging
from mystorage_auth.core.logger import init_app as init_logging
from mystorage_auth.services._shared.ports import EmailGateway


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    instance_relative_config: bool = True,
    instance_config_filename: str = "config.py",
    email_gateway: EmailGateway | None = None,
) -> Flask:
    """Build and configure the Flask application.

    :param config: Config object/class or import path; ``None`` picks one from ``APP_ENV``.
    :param instance_relative_config: Load ``instance/<instance_config_filename>`` on top.
    :param instance_config_filename: Optional instance override file name.
    :param email_gateway: Replaces the HTTP mail gateway (used by tests).
    """

    app = Flask(__name__, instance_relative_config=instance_relative_config)

    app.config.from_object(get_config() if config is None else config)
    if instance_relative_config and instance_config_filename:
        app.config.from_pyfile(instance_config_filename, silent=True)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    from mystorage_auth.core import extensions

    extensions.init_app(app)

    init_logging(app)

    from mystorage_auth.api import deps

    deps.init_app(app, email_gateway=email_gateway)

    from mystorage_auth.api import init_app as init_api

    init_api(app)

    from mystorage_auth.core import errors

    errors.init_app(app)

    from mystorage_auth import cli as app_cli

    app_cli.init_app(app)

    return app
