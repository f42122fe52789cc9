"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'

# Placeholder accepted only by development/testing configurations
DEV_SIGNING_KEY: Final[str] = "authgate-dev-signing-key-not-for-production"
MIN_SIGNING_KEY_BYTES: Final[int] = 32
MIN_PRODUCTION_HASH_COST: Final[int] = 100_000
RELAXED_ENVIRONMENTS: Final[frozenset[str]] = frozenset({"development", "testing"})
REFRESH_STORE_BACKENDS: Final[frozenset[str]] = frozenset({"sql", "redis", "memory"})

# Load .env during development (no-op when absent)
load_dotenv()


class ConfigurationError(RuntimeError):
    """Raised at startup when a required setting is missing or unsafe."""


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


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    APP_ENV: str
        Environment name; decides how strictly auth settings are validated.
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    AUTH_SIGNING_KEY: str
        HMAC key for bearer tokens. No default outside development/testing.
    AUTH_ACCESS_TTL_SECONDS: int
        Access token lifetime in seconds.
    AUTH_REFRESH_TTL_SECONDS: int
        Refresh token lifetime in seconds.
    AUTH_PASSWORD_HASH_COST: int
        PBKDF2-SHA256 iteration count for stored password hashes.
    AUTH_REFRESH_STORE: str
        Refresh token store backend: ``sql``, ``redis`` or ``memory``.
    SQLALCHEMY_DATABASE_URI: str
        Database connection string consumed by SQLAlchemy.
    REDIS_URL: str | None
        Redis connection string, required when ``AUTH_REFRESH_STORE=redis``.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    CORS_ORIGINS: str
        Comma-separated list of allowed origins for CORS.

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    APP_ENV = "production"
    API_BASE_PREFIX = "/api"

    # Secrets / security
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")
    AUTH_SIGNING_KEY = os.getenv("AUTH_SIGNING_KEY", "")
    AUTH_ACCESS_TTL_SECONDS = int(os.getenv("AUTH_ACCESS_TTL_SECONDS", "900"))
    AUTH_REFRESH_TTL_SECONDS = int(os.getenv("AUTH_REFRESH_TTL_SECONDS", "604800"))
    AUTH_PASSWORD_HASH_COST = int(os.getenv("AUTH_PASSWORD_HASH_COST", "600000"))
    AUTH_REFRESH_STORE = os.getenv("AUTH_REFRESH_STORE", "sql")

    # DB / cache
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    REDIS_URL = os.getenv("REDIS_URL")

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging & CORS
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173")

    # Flask built-ins
    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development.

    Notes
    -----
    Falls back to the development signing key and a cheap hash cost so the
    service boots without a ``.env`` file.
    """

    APP_ENV = "development"
    DEBUG = env_bool("FLASK_DEBUG", True)
    AUTH_SIGNING_KEY = os.getenv("AUTH_SIGNING_KEY", DEV_SIGNING_KEY)
    AUTH_PASSWORD_HASH_COST = int(os.getenv("AUTH_PASSWORD_HASH_COST", "50000"))
    CORS_MAX_AGE = 600  # 10 minutes


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and disables debug logs.
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Keeps password hashing cheap; the cost only matters in production.
    """

    APP_ENV = "testing"
    TESTING = True
    DEBUG = False
    AUTH_SIGNING_KEY = os.getenv("AUTH_SIGNING_KEY", DEV_SIGNING_KEY)
    AUTH_PASSWORD_HASH_COST = 1
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    PROPAGATE_EXCEPTIONS = True


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments.

    Notes
    -----
    ``AUTH_SIGNING_KEY`` must come from the environment; the factory refuses to
    start without it.
    """

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

    Returns
    -------
    type[BaseConfig]
        Class to pass to :meth:`flask.Config.from_object`.

    Notes
    -----
    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)


def _positive_int(config: Mapping[str, Any], name: str, default: int) -> int:
    raw = config.get(name, default)
    try:
        value = int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}.") from exc
    if value < 1:
        raise ConfigurationError(f"{name} must be >= 1, got {value}.")
    return value


@dataclass(frozen=True, slots=True)
class AuthSettings:
    """
    Validated, read-only auth configuration loaded once at startup.

    :param signing_key: HMAC-SHA256 key for bearer tokens.
    :type signing_key: bytes
    :param access_ttl: Access token lifetime.
    :type access_ttl: timedelta
    :param refresh_ttl: Refresh token lifetime.
    :type refresh_ttl: timedelta
    :param password_hash_cost: PBKDF2 iteration count.
    :type password_hash_cost: int
    """

    signing_key: bytes
    access_ttl: timedelta
    refresh_ttl: timedelta
    password_hash_cost: int

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> AuthSettings:
        """
        Build settings from a Flask config (or any mapping) and validate them.

        :param config: Mapping holding the ``AUTH_*`` keys.
        :returns: Validated settings.
        :raises ConfigurationError: If the signing key is missing, too short, or
            the development placeholder outside development/testing; or if a
            numeric setting is invalid.
        """
        app_env = str(config.get("APP_ENV", "production")).strip().lower()
        relaxed = app_env in RELAXED_ENVIRONMENTS or bool(config.get("TESTING"))

        raw_key = config.get("AUTH_SIGNING_KEY") or ""
        key = raw_key.encode("utf-8") if isinstance(raw_key, str) else bytes(raw_key)
        if not key:
            raise ConfigurationError("AUTH_SIGNING_KEY is required.")
        if not relaxed and key == DEV_SIGNING_KEY.encode("utf-8"):
            raise ConfigurationError(
                "AUTH_SIGNING_KEY is the development placeholder; set a real key."
            )
        if len(key) < MIN_SIGNING_KEY_BYTES:
            raise ConfigurationError(
                f"AUTH_SIGNING_KEY must be at least {MIN_SIGNING_KEY_BYTES} bytes."
            )

        cost = _positive_int(config, "AUTH_PASSWORD_HASH_COST", 600_000)
        if not relaxed and cost < MIN_PRODUCTION_HASH_COST:
            raise ConfigurationError(
                f"AUTH_PASSWORD_HASH_COST must be >= {MIN_PRODUCTION_HASH_COST} in {app_env}."
            )

        return cls(
            signing_key=key,
            access_ttl=timedelta(seconds=_positive_int(config, "AUTH_ACCESS_TTL_SECONDS", 900)),
            refresh_ttl=timedelta(
                seconds=_positive_int(config, "AUTH_REFRESH_TTL_SECONDS", 604_800)
            ),
            password_hash_cost=cost,
        )


def refresh_store_backend(config: Mapping[str, Any]) -> str:
    """Return the configured refresh store backend name, validated."""
    name = str(config.get("AUTH_REFRESH_STORE", "sql")).strip().lower()
    if name not in REFRESH_STORE_BACKENDS:
        raise ConfigurationError(
            f"AUTH_REFRESH_STORE must be one of {sorted(REFRESH_STORE_BACKENDS)}, got {name!r}."
        )
    if name == "redis" and not config.get("REDIS_URL"):
        raise ConfigurationError("AUTH_REFRESH_STORE=redis requires REDIS_URL.")
    return name
