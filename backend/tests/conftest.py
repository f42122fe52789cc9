"""Pytest fixtures configuring an isolated transactional database layer.

Each test runs inside a SAVEPOINT-backed transaction against an in-memory
SQLite database so data changes never leak between cases. Service-level tests
that do not need SQL use the in-memory ports with a :class:`FixedClock`.
"""

from __future__ import annotations

import os

import pytest
from authgate.core.config import TestingConfig
from authgate.core.extensions import db as _db  # Flask-SQLAlchemy instance
from authgate.factory import create_app  # application factory under test
from authgate.services._shared.ports import (
    FixedClock,
    InMemoryAccountDirectory,
    InMemoryRefreshTokenStore,
)
from authgate.services.auth import AuthenticationService
from authgate.services.credentials import CredentialVerifier
from authgate.services.identity import IdentityResolver
from authgate.services.tokens import ClaimsCodec, TokenService
from authgate.wiring import EXTENSION_KEY
from sqlalchemy import event
from sqlalchemy.orm import scoped_session, sessionmaker

SIGNING_KEY = b"tests-signing-key-0123456789abcdef"


class TestConfig(TestingConfig):
    """Testing configuration for creating the Flask app.

    Notes
    -----
    - Uses an in-memory SQLite database for speed.
    - Stores refresh tokens in SQL and never touches Redis.
    - Keeps password hashing at one iteration.
    """

    AUTH_SIGNING_KEY = SIGNING_KEY.decode()
    AUTH_PASSWORD_HASH_COST = 1
    AUTH_REFRESH_STORE = "sql"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    REDIS_URL = None
    USE_PROXYFIX = False
    LOG_LEVEL = "WARNING"


@pytest.fixture(scope="session")
def app():
    """Create a Flask application configured for testing.

    Returns
    -------
    flask.Flask
        Application instance with :class:`TestConfig` applied and logging
        noise reduced.
    """
    # Ensure env-based config does not leak into tests
    os.environ.pop("DATABASE_URL", None)
    app = create_app(TestConfig, instance_relative_config=False)
    app.logger.setLevel("WARNING")
    return app


@pytest.fixture(scope="session")
def db(app):
    """Create database tables once per test session.

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
    the SAVEPOINT whenever SQLAlchemy ends one. Units of work committing inside
    a test only release their own SAVEPOINT.
    """
    top_trans = connection.begin()

    SessionFactory = sessionmaker(bind=connection, future=True)
    scoped = scoped_session(SessionFactory)

    nested = connection.begin_nested()

    @event.listens_for(scoped(), "after_transaction_end")
    def _restart_savepoint(sess, trans):  # pragma: no cover
        if trans.nested and not trans._parent.nested:
            nonlocal nested
            nested = connection.begin_nested()

    # Swap db.session so app code uses this scoped session
    original_session = db.session
    db.session.remove()
    db.session = scoped

    try:
        yield scoped
    finally:
        scoped.remove()
        db.session = original_session
        top_trans.rollback()


@pytest.fixture()
def client(app, session):
    """Return a Flask test client sharing the transactional session."""
    return app.test_client()


@pytest.fixture()
def auth_service(app) -> AuthenticationService:
    """The SQL-backed service wired by the application factory."""
    return app.extensions[EXTENSION_KEY]


@pytest.fixture(scope="session")
def faker():
    """Provide a :class:`faker.Faker` instance seeded for deterministic tests."""
    from faker import Faker

    fk = Faker()
    Faker.seed(1337)
    return fk


# -- In-memory service graph ----------------------------------------------------


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture()
def accounts(clock) -> InMemoryAccountDirectory:
    return InMemoryAccountDirectory(clock=clock)


@pytest.fixture()
def refresh_store() -> InMemoryRefreshTokenStore:
    return InMemoryRefreshTokenStore()


@pytest.fixture()
def signing_key() -> bytes:
    return SIGNING_KEY


@pytest.fixture()
def codec(clock) -> ClaimsCodec:
    return ClaimsCodec(SIGNING_KEY, clock=clock)


@pytest.fixture()
def verifier() -> CredentialVerifier:
    return CredentialVerifier(cost=1)


@pytest.fixture()
def token_service(codec, refresh_store, clock) -> TokenService:
    return TokenService(codec=codec, store=refresh_store, clock=clock)


@pytest.fixture()
def resolver(accounts) -> IdentityResolver:
    return IdentityResolver(accounts=accounts)


@pytest.fixture()
def service(accounts, verifier, token_service, resolver, clock) -> AuthenticationService:
    """Build an AuthenticationService wired to in-memory doubles."""
    return AuthenticationService(
        accounts=accounts,
        verifier=verifier,
        tokens=token_service,
        identities=resolver,
        clock=clock,
    )


# -- Hook up Factory Boy to pytest SQLAlchemy session --------------------------
@pytest.fixture(autouse=True)
def _factories_session(session):
    """Wire Factory Boy's session helper to the transactional session fixture."""
    from tests.factories import SQLAlchemySession

    SQLAlchemySession.set(session)
    yield
