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

DEFAULT_RATE_LIMITED_PATHS: Final[str] = r"^/api/v1/auth/(login|register)$"
HMAC_ALGORITHMS: Final[frozenset[str]] = frozenset({"HS256", "HS384", "HS512"})

# Load .env in development (no-op when absent)
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
        Flask secret used for session signing.
    JWT_SECRET_KEY: str
        Symmetric key used to sign access tokens. Must be overridden in
        production.
    JWT_ALGORITHM: str
        HMAC algorithm used for access tokens.
    ACCESS_TOKEN_TTL: int
        Access token lifetime in seconds.
    REFRESH_TOKEN_TTL: int
        Refresh token lifetime in seconds.
    RATE_LIMIT_MAX: int
        Admissions allowed per client and endpoint within one window.
    RATE_LIMIT_WINDOW: int
        Window length in seconds.
    RATE_LIMITED_PATHS: str
        Regular expression matched against the request path; only matching
        paths are subject to admission control.
    REFRESH_STORE_BACKEND: str
        ``"sqlalchemy"``, ``"redis"`` or ``"memory"``.
    REFRESH_REUSE_REVOKES_FAMILY: bool
        Revoke the whole rotation chain when a rotated secret is presented again.
    SQLALCHEMY_DATABASE_URI: str
        Database connection string consumed by SQLAlchemy.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    CORS_ORIGINS: str
        Comma-separated list of allowed origins for CORS.

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    API_BASE_PREFIX = "/api"

    # Secrets / security
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "CHANGE_ME_JWT_SIGNING_KEY_32_BYTES!")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

    # Token lifetimes (seconds)
    ACCESS_TOKEN_TTL = env_int("ACCESS_TOKEN_TTL", 15 * 60)
    REFRESH_TOKEN_TTL = env_int("REFRESH_TOKEN_TTL", 14 * 24 * 3600)

    # Admission control
    RATE_LIMIT_MAX = env_int("RATE_LIMIT_MAX", 5)
    RATE_LIMIT_WINDOW = env_int("RATE_LIMIT_WINDOW", 60)
    RATE_LIMIT_SWEEP_FACTOR = 10
    RATE_LIMIT_SWEEP_INTERVAL = 1000
    RATE_LIMITED_PATHS = DEFAULT_RATE_LIMITED_PATHS

    # Refresh sessions
    REFRESH_STORE_BACKEND = os.getenv("REFRESH_STORE_BACKEND", "sqlalchemy")
    REFRESH_REUSE_REVOKES_FAMILY = env_bool("REFRESH_REUSE_REVOKES_FAMILY", False)
    REDIS_URL = os.getenv("REDIS_URL")

    # Refresh cookie
    REFRESH_COOKIE_NAME = "refresh_token"
    REFRESH_COOKIE_PATH = "/api/v1/auth"
    REFRESH_COOKIE_SECURE = env_bool("REFRESH_COOKIE_SECURE", False)
    REFRESH_COOKIE_SAMESITE = os.getenv("REFRESH_COOKIE_SAMESITE", "Lax")
    # Also return the raw refresh secret in JSON bodies (non-browser clients)
    REFRESH_TOKEN_IN_BODY = env_bool("REFRESH_TOKEN_IN_BODY", False)

    # DB
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging, CORS & proxy
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173")
    USE_PROXYFIX = env_bool("USE_PROXYFIX", False)

    # Flask built-ins
    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development."""

    DEBUG = env_bool("FLASK_DEBUG", True)
    CORS_MAX_AGE = 600  # 10 minutes


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Propagates exceptions so pytest can surface tracebacks directly.
    """

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    JWT_SECRET_KEY = "testing-signing-key-with-enough-bytes"
    PROPAGATE_EXCEPTIONS = True


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments."""

    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False
    REFRESH_COOKIE_SECURE = env_bool("REFRESH_COOKIE_SECURE", True)
    REFRESH_COOKIE_SAMESITE = os.getenv("REFRESH_COOKIE_SAMESITE", "None")


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


@dataclass(frozen=True, slots=True)
class AuthSettings:
    """
    Immutable token and admission settings built once at startup.

    The instance is handed by reference to the token signer, the refresh store,
    the rotation engine and the rate limiter, so tests can run side by side with
    distinct keys.

    :ivar signing_key: Symmetric key for access token signatures.
    :ivar access_token_ttl: Access token lifetime.
    :ivar refresh_token_ttl: Refresh token lifetime.
    :ivar rate_limit_max: Admissions per window.
    :ivar rate_limit_window: Window length.
    :ivar algorithm: JWT HMAC algorithm.
    :ivar reuse_revokes_family: Revoke the rotation chain on reuse of a rotated secret.
    """

    signing_key: str
    access_token_ttl: timedelta = timedelta(minutes=15)
    refresh_token_ttl: timedelta = timedelta(days=14)
    rate_limit_max: int = 5
    rate_limit_window: timedelta = timedelta(seconds=60)
    algorithm: str = "HS256"
    reuse_revokes_family: bool = False

    def __post_init__(self) -> None:
        if not self.signing_key:
            raise ValueError("signing_key must be a non-empty string.")
        if self.access_token_ttl <= timedelta(0):
            raise ValueError("access_token_ttl must be positive.")
        if self.refresh_token_ttl <= timedelta(0):
            raise ValueError("refresh_token_ttl must be positive.")
        if self.rate_limit_max < 1:
            raise ValueError("rate_limit_max must be at least 1.")
        if self.rate_limit_window <= timedelta(0):
            raise ValueError("rate_limit_window must be positive.")
        if self.algorithm not in HMAC_ALGORITHMS:
            raise ValueError(
                f"algorithm must be one of {sorted(HMAC_ALGORITHMS)}, got {self.algorithm!r}."
            )

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> AuthSettings:
        """
        Build settings from a Flask config (or any mapping of upper-case keys).

        :param config: Mapping holding ``JWT_SECRET_KEY``, ``ACCESS_TOKEN_TTL``, etc.
        :returns: Validated settings.
        :raises ValueError: When a value is missing or out of range.
        """
        return cls(
            signing_key=str(config.get("JWT_SECRET_KEY") or ""),
            access_token_ttl=timedelta(seconds=int(config.get("ACCESS_TOKEN_TTL", 900))),
            refresh_token_ttl=timedelta(seconds=int(config.get("REFRESH_TOKEN_TTL", 1209600))),
            rate_limit_max=int(config.get("RATE_LIMIT_MAX", 5)),
            rate_limit_window=timedelta(seconds=int(config.get("RATE_LIMIT_WINDOW", 60))),
            algorithm=str(config.get("JWT_ALGORITHM", "HS256")),
            reuse_revokes_family=bool(config.get("REFRESH_REUSE_REVOKES_FAMILY", False)),
        )
