"""
Authentication component wiring.

Builds the signer, the refresh token repository (chosen by
``REFRESH_STORE_BACKEND``), the store, the credential verifier and the rate
limiter once per application, and keeps them in
``app.extensions["authkit"]``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from flask import Flask, current_app, g, has_request_context, request

from authkit.core.config import AuthSettings
from authkit.services._shared.base import ServiceContext
from authkit.services._shared.ports import (
    CredentialVerifier,
    InMemoryRefreshTokenRepository,
    RefreshTokenRepository,
    TokenSigner,
)
from authkit.services.auth.service import AuthService
from authkit.services.ratelimit.identity import client_identity
from authkit.services.ratelimit.limiter import RateLimiter
from authkit.services.tokens.refresh_store import RefreshTokenStore

log = logging.getLogger(__name__)

EXTENSION_KEY = "authkit"
BACKENDS = ("sqlalchemy", "memory", "redis")


@dataclass(slots=True)
class AuthComponents:
    """Process-wide authentication collaborators shared by every request."""

    settings: AuthSettings
    signer: TokenSigner
    repository: RefreshTokenRepository
    refresh_store: RefreshTokenStore
    verifier: CredentialVerifier
    limiter: RateLimiter


def build_repository(app: Flask) -> RefreshTokenRepository:
    """
    Instantiate the refresh token repository named by ``REFRESH_STORE_BACKEND``.

    :raises RuntimeError: On an unknown backend name.
    """
    backend = str(app.config.get("REFRESH_STORE_BACKEND", "sqlalchemy")).strip().lower()
    if backend == "sqlalchemy":
        from authkit.infra.sqlalchemy.sql_refresh_token_repository import (
            SQLAlchemyRefreshTokenRepository,
        )

        return SQLAlchemyRefreshTokenRepository()
    if backend == "memory":
        return InMemoryRefreshTokenRepository()
    if backend == "redis":
        from authkit.core.extensions import get_redis
        from authkit.infra.redis.redis_refresh_token_repository import (
            RedisRefreshTokenRepository,
        )

        return RedisRefreshTokenRepository(get_redis(app))
    raise RuntimeError(f"Unknown REFRESH_STORE_BACKEND {backend!r}; expected one of {BACKENDS}")


def init_app(app: Flask) -> None:
    """Create the authentication components and register them on ``app``."""
    from authkit.infra.jwt.jwt_token_signer import JWTTokenSigner
    from authkit.services.identity.verifier import UserCredentialVerifier

    settings = AuthSettings.from_mapping(app.config)
    repository = build_repository(app)
    limiter = RateLimiter.from_settings(
        settings,
        sweep_factor=int(app.config.get("RATE_LIMIT_SWEEP_FACTOR", 10)),
        sweep_interval=int(app.config.get("RATE_LIMIT_SWEEP_INTERVAL", 1000)),
    )
    app.extensions[EXTENSION_KEY] = AuthComponents(
        settings=settings,
        signer=JWTTokenSigner(settings),
        repository=repository,
        refresh_store=RefreshTokenStore(repository=repository, settings=settings),
        verifier=UserCredentialVerifier(),
        limiter=limiter,
    )
    log.info("auth.configured repository=%s", type(repository).__name__)


def get_components() -> AuthComponents:
    """Return the components of the current application."""
    try:
        return current_app.extensions[EXTENSION_KEY]
    except KeyError:
        raise RuntimeError(
            "Authentication is not initialized. Call authkit.core.auth.init_app()."
        ) from None


def request_context() -> ServiceContext:
    """Build a :class:`ServiceContext` from the active request, if any."""
    if not has_request_context():
        return ServiceContext()
    principal = g.get("principal")
    return ServiceContext(
        actor_id=principal.user_id if principal is not None else None,
        request_id=g.get("request_id"),
        client=client_identity(request.headers, request.remote_addr),
    )


def get_auth_service() -> AuthService:
    """Build a request-scoped :class:`AuthService` over the shared components."""
    c = get_components()
    return AuthService(
        signer=c.signer,
        refresh_store=c.refresh_store,
        verifier=c.verifier,
        settings=c.settings,
        ctx=request_context(),
    )
