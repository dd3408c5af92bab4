"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'


# Load .env in development (no-op when the file is missing)
load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def env_int(name: str, default: int) -> int:
    """Parse an integer from an environment variable, falling back to ``default``."""
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    return int(val)


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    SECRET_KEY: str
        Flask secret. Defaults to a development placeholder.
    JWT_SECRET_KEY: str
        HMAC key used to sign and verify access tokens.
    JWT_ISSUER / JWT_AUDIENCE: str
        ``iss`` and ``aud`` claims written into, and required from, access tokens.
    ACCESS_TOKEN_MINUTES: int
        Access token lifetime.
    REFRESH_TOKEN_DAYS: int
        Refresh token lifetime.
    MAX_REFRESH_TOKENS_PER_ACCOUNT: int
        Ceiling on stored refresh tokens per account; oldest are evicted first.
    APP_BASE_URL: str
        Base URL for confirmation/reset links. When blank the request host is used.
    CONFIRMATION_TOKEN_HOURS / RESET_TOKEN_MINUTES: int
        Lifetimes of the single-use email confirmation and password reset tokens.
    PASSWORD_MIN_LENGTH: int
        Minimum password length enforced by the password policy.
    PASSWORD_REQUIRE_DIGIT / _LOWER / _UPPER / _SYMBOL: bool
        Character classes the password policy requires.
    EMAIL_API_URL / EMAIL_CONSUMER_KEY / EMAIL_CONSUMER_SECRET / EMAIL_SENDER:
        Outbound mail API endpoint and credentials.
    SQLALCHEMY_DATABASE_URI: str
        Database connection string consumed by SQLAlchemy.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    API_BASE_PREFIX = "/api"

    # Secrets / security
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "CHANGE_ME_JWT_SIGNING_KEY_32_BYTES")
    JWT_ALGORITHM = "HS256"
    JWT_ISSUER = os.getenv("JWT_ISSUER", "mystorage-api")
    JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "mystorage-clients")

    # Token lifecycle
    ACCESS_TOKEN_MINUTES = env_int("ACCESS_TOKEN_MINUTES", 15)
    REFRESH_TOKEN_DAYS = env_int("REFRESH_TOKEN_DAYS", 7)
    MAX_REFRESH_TOKENS_PER_ACCOUNT = env_int("MAX_REFRESH_TOKENS_PER_ACCOUNT", 5)
    CONFIRMATION_TOKEN_HOURS = env_int("CONFIRMATION_TOKEN_HOURS", 24)
    RESET_TOKEN_MINUTES = env_int("RESET_TOKEN_MINUTES", 60)
    PASSWORD_MIN_LENGTH = env_int("PASSWORD_MIN_LENGTH", 8)
    PASSWORD_REQUIRE_DIGIT = env_bool("PASSWORD_REQUIRE_DIGIT", True)
    PASSWORD_REQUIRE_LOWER = env_bool("PASSWORD_REQUIRE_LOWER", True)
    PASSWORD_REQUIRE_UPPER = env_bool("PASSWORD_REQUIRE_UPPER", True)
    PASSWORD_REQUIRE_SYMBOL = env_bool("PASSWORD_REQUIRE_SYMBOL", True)
    APP_BASE_URL = os.getenv("APP_BASE_URL", "")

    # Outbound email
    EMAIL_API_URL = os.getenv("EMAIL_API_URL", "")
    EMAIL_CONSUMER_KEY = os.getenv("EMAIL_CONSUMER_KEY", "")
    EMAIL_CONSUMER_SECRET = os.getenv("EMAIL_CONSUMER_SECRET", "")
    EMAIL_SENDER = os.getenv("EMAIL_SENDER", "no-reply@mystorage.local")
    EMAIL_TIMEOUT_SECONDS = env_int("EMAIL_TIMEOUT_SECONDS", 10)

    # DB
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Flask built-ins
    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development."""

    DEBUG = env_bool("FLASK_DEBUG", True)
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and disables debug logs.
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Never points at a real mail API.
    """

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    JWT_SECRET_KEY = "testing-signing-key-with-enough-entropy"
    APP_BASE_URL = "https://app.test"
    EMAIL_API_URL = "https://mail.test/send"
    EMAIL_CONSUMER_KEY = "test-key"
    EMAIL_CONSUMER_SECRET = "test-secret"
    PROPAGATE_EXCEPTIONS = False


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments."""

    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False


# Map names -> classes (simple, explicit)
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)
