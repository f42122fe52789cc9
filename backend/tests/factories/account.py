"""Factory Boy definitions for :class:`authgate.models.account.Account`."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import factory
from authgate.models.account import Account
from authgate.models.refresh_token import RefreshToken
from authgate.services._shared.enums import AuthProvider, Role
from authgate.services.credentials import CredentialVerifier

from tests.factories import BaseFactory

DEFAULT_PASSWORD = "Passw0rd!"

_hasher = CredentialVerifier(cost=1)


class AccountFactory(BaseFactory):
    """
    Build persisted LOCAL accounts.

    Notes
    -----
    - ``password`` is hashed into ``password_hash`` before the row is
      flushed; pass ``password=None`` for an account without a stored hash.
    - The ``github`` trait builds an external account without a password.
    """

    class Meta:
        model = Account

    id = None  # let autoincrement handle it
    email = factory.Sequence(lambda n: f"user{n}@example.com")
    username = factory.Sequence(lambda n: f"user{n}")
    provider = AuthProvider.LOCAL
    provider_id = None
    profile_image = None
    role = Role.USER
    active = True
    email_verified = False
    password_hash = factory.LazyAttribute(
        lambda o: None if o.password is None else _hasher.hash(o.password)
    )

    class Params:
        password = DEFAULT_PASSWORD
        github = factory.Trait(
            provider=AuthProvider.GITHUB,
            provider_id=factory.Sequence(lambda n: str(9000 + n)),
            email_verified=True,
            password=None,
        )


class RefreshTokenFactory(BaseFactory):
    """Stored refresh token digest for an account."""

    class Meta:
        model = RefreshToken

    id = None
    account = factory.SubFactory(AccountFactory)
    token = factory.Sequence(lambda n: f"{n:064x}")
    expires_at = factory.LazyFunction(lambda: datetime.now(UTC) + timedelta(days=7))
    created_at = factory.LazyFunction(lambda: datetime.now(UTC))
