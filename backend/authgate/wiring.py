"""Compose the authentication service graph from the Flask config."""

from __future__ import annotations

import logging

from flask import Flask

from authgate.core.config import AuthSettings, refresh_store_backend
from authgate.core.extensions import get_redis
from authgate.infra.redis.refresh_token_store import RedisRefreshTokenStore
from authgate.infra.sqlalchemy.account_directory import SqlAlchemyAccountDirectory
from authgate.infra.sqlalchemy.refresh_token_store import SqlAlchemyRefreshTokenStore
from authgate.services._shared.ports import (
    Clock,
    InMemoryRefreshTokenStore,
    RefreshTokenStore,
    SystemClock,
)
from authgate.services.auth import AuthenticationService
from authgate.services.credentials import CredentialVerifier
from authgate.services.identity import IdentityResolver
from authgate.services.tokens import ClaimsCodec, TokenService

log = logging.getLogger(__name__)

EXTENSION_KEY = "auth_service"


def build_refresh_store(app: Flask) -> RefreshTokenStore:
    """Return the refresh token store selected by ``AUTH_REFRESH_STORE``."""
    backend = refresh_store_backend(app.config)
    if backend == "redis":
        return RedisRefreshTokenStore(r=get_redis())
    if backend == "memory":
        return InMemoryRefreshTokenStore()
    return SqlAlchemyRefreshTokenStore()


def build_auth_service(app: Flask, *, clock: Clock | None = None) -> AuthenticationService:
    """
    Validate the auth settings and wire the service graph.

    :param app: Configured application (extensions already initialized).
    :param clock: Time source shared by every component; system time by default.
    :returns: Ready-to-use authentication service.
    :raises ConfigurationError: If the auth settings are missing or unsafe.
    """
    settings = AuthSettings.from_mapping(app.config)
    clock = clock or SystemClock()
    store = build_refresh_store(app)
    accounts = SqlAlchemyAccountDirectory(clock=clock)

    tokens = TokenService(
        codec=ClaimsCodec(settings.signing_key, clock=clock),
        store=store,
        access_ttl=settings.access_ttl,
        refresh_ttl=settings.refresh_ttl,
        clock=clock,
    )
    service = AuthenticationService(
        accounts=accounts,
        verifier=CredentialVerifier(cost=settings.password_hash_cost),
        tokens=tokens,
        identities=IdentityResolver(accounts=accounts),
        clock=clock,
    )
    log.info(
        "auth service ready",
        extra={"event": "auth.ready", "store": type(store).__name__},
    )
    return service


def init_app(app: Flask) -> None:
    """Build the service once and keep it on ``app.extensions``."""
    app.extensions[EXTENSION_KEY] = build_auth_service(app)
