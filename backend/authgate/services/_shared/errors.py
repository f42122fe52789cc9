"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic**: they never depend on Flask or
HTTP. The translation to RFC 7807 responses happens in
``authgate/core/errors.py``.

Hierarchy
---------
- :class:`NotFoundError` → :class:`AccountNotFoundError`
- :class:`ConflictError` → email, username and provider conflicts
- :class:`AuthenticationError` → :class:`InvalidCredentialsError`
- :class:`TokenError` → :class:`InvalidTokenError` (and the codec failures
  :class:`MalformedTokenError`, :class:`BadSignatureError`,
  :class:`UnsupportedTokenError`, :class:`TokenExpiredError`) and
  :class:`RevokedOrUnknownTokenError`
- :class:`UnsupportedProviderError`, :class:`IncompleteIdentityError` →
  :class:`MissingEmailError`
- :class:`UnavailableError` for persistence faults
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError

if TYPE_CHECKING:
    from authgate.services.tokens.codec import TokenClaims


def violates(exc: IntegrityError, constraint_name: str) -> bool:
    """
    Check whether an IntegrityError originates from a specific constraint.

    PostgreSQL reports the constraint name in the message. SQLite only reports
    the columns, so ``table.column`` hints such as ``accounts.email`` are
    matched as well (see :func:`constraint_columns`).

    Parameters
    ----------
    exc : IntegrityError
        The exception raised by SQLAlchemy during flush/commit.
    constraint_name : str
        Name of the database constraint (e.g., ``'uq_accounts_email'``).

    Returns
    -------
    bool
        True if the IntegrityError matches the given constraint.
    """
    message = str(exc.orig).lower() if exc.orig else ""
    if constraint_name.lower() in message:
        return True
    columns = constraint_columns(constraint_name)
    return bool(columns) and all(col in message for col in columns)


def constraint_columns(constraint_name: str) -> tuple[str, ...]:
    """Return ``table.column`` hints for the known unique constraints."""
    return _CONSTRAINT_COLUMNS.get(constraint_name.lower(), ())


# SQLite: "UNIQUE constraint failed: accounts.provider, accounts.provider_id"
_CONSTRAINT_COLUMNS: dict[str, tuple[str, ...]] = {
    "uq_accounts_email": ("accounts.email",),
    "uq_accounts_username": ("accounts.username",),
    "uq_accounts_provider_external_id": ("accounts.provider,", "accounts.provider_id"),
    "uq_refresh_tokens_account_id": ("refresh_tokens.account_id",),
    "uq_refresh_tokens_token": ("refresh_tokens.token",),
}


# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - Every kind is recoverable by the caller; none should crash the process.
    """


@dataclass(slots=True, eq=False)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found.

    :param entity: Entity name (e.g., "Account").
    :type entity: str
    :param key: Identifier or search key.
    :type key: str | int
    """

    entity: str
    key: str | int

    def __str__(self) -> str:
        return f"{self.entity} not found: {self.key}"


@dataclass(slots=True, eq=False)
class ConflictError(ServiceError):
    """
    Raised when a unique constraint or business rule conflict occurs.

    :param entity: Entity name (e.g., "Account").
    :type entity: str
    :param detail: Short human-readable explanation.
    :type detail: str
    """

    entity: str
    detail: str

    def __str__(self) -> str:
        return f"Conflict on {self.entity}: {self.detail}"


# --------------------------------------------------------------------------- #
# Accounts
# --------------------------------------------------------------------------- #


class AccountNotFoundError(NotFoundError):
    """No account exists for the given id."""

    def __init__(self, account_id: int | str) -> None:
        NotFoundError.__init__(self, "Account", account_id)


class EmailTakenError(ConflictError):
    """Another account already uses this email."""

    def __init__(self, email: str) -> None:
        ConflictError.__init__(self, "Account", "email already registered")
        self.email = email


class UsernameTakenError(ConflictError):
    """Another account already uses this username."""

    def __init__(self, username: str) -> None:
        ConflictError.__init__(self, "Account", f"username '{username}' is taken")
        self.username = username


class ProviderConflictError(ConflictError):
    """
    The email is already bound to a different provider.

    Terminal: the caller must sign in with the provider that owns the account.

    :param existing: Provider tag of the stored account.
    :param requested: Provider tag the identity was asserted by.
    """

    def __init__(self, *, existing: str, requested: str, detail: str | None = None) -> None:
        ConflictError.__init__(
            self,
            "Account",
            detail
            or f"email is registered with {existing}; sign in with {existing} instead of {requested}",
        )
        self.existing = existing
        self.requested = requested


# --------------------------------------------------------------------------- #
# Authentication
# --------------------------------------------------------------------------- #


class AuthenticationError(ServiceError):
    """Base class for failed authentication attempts."""


class InvalidCredentialsError(AuthenticationError):
    """Unknown email, wrong password, or an account that cannot sign in."""

    def __init__(self, message: str = "Invalid email or password.") -> None:
        super().__init__(message)


# --------------------------------------------------------------------------- #
# Tokens
# --------------------------------------------------------------------------- #


class TokenError(ServiceError):
    """Base class for bearer token failures."""


class InvalidTokenError(TokenError):
    """The token failed verification."""


class MalformedTokenError(InvalidTokenError):
    """The token cannot be parsed."""


class BadSignatureError(InvalidTokenError):
    """The token signature does not verify against the signing key."""


class UnsupportedTokenError(InvalidTokenError):
    """The token uses a signing scheme this service does not accept."""


class TokenExpiredError(InvalidTokenError):
    """
    The token, or the stored refresh record, is past its expiry.

    :param claims: Verified claims when the signature was valid, else ``None``.
    """

    def __init__(self, message: str = "Token expired.", *, claims: TokenClaims | None = None):
        super().__init__(message)
        self.claims = claims


class RevokedOrUnknownTokenError(TokenError):
    """The refresh token is not the current one for its account (revoked, rotated or replayed)."""


# --------------------------------------------------------------------------- #
# External identities
# --------------------------------------------------------------------------- #


class UnsupportedProviderError(ServiceError):
    """The provider tag is not one of the registered external providers."""

    def __init__(self, tag: str) -> None:
        super().__init__(f"Unsupported identity provider: {tag!r}")
        self.tag = tag


class IncompleteIdentityError(ServiceError):
    """The provider payload lacks an attribute accounts cannot exist without."""


class MissingEmailError(IncompleteIdentityError):
    """The provider did not supply a usable email."""

    def __init__(self, provider: str) -> None:
        super().__init__(f"{provider} did not provide an email address.")
        self.provider = provider


# --------------------------------------------------------------------------- #
# Infrastructure
# --------------------------------------------------------------------------- #


class UnavailableError(ServiceError):
    """A backing store failed; callers may retry at their discretion."""
