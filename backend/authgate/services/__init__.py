"""Service layer public API.

Callers can import from :mod:`authgate.services` without knowing the
internal structure.

Re-exports
----------
- Shared DTOs (from ``authgate.services._shared.dto``)
    * :class:`AccountRecord`
    * :class:`AccountOut`

- Authentication (from ``authgate.services.auth``)
    * :class:`AuthenticationService`
    * DTOs: :class:`SignupIn`, :class:`LoginIn`, :class:`PasswordChangeIn`,
      :class:`ProfileUpdateIn`

- Tokens (from ``authgate.services.tokens``)
    * :class:`ClaimsCodec`, :class:`TokenService`, :class:`TokenPairOut`

- Credentials and identities
    * :class:`CredentialVerifier`
    * :class:`IdentityResolver`, :class:`ExternalIdentity`
"""

from __future__ import annotations

from ._shared.dto import AccountOut, AccountRecord
from .auth import (
    AuthenticationService,
    LoginIn,
    PasswordChangeIn,
    ProfileUpdateIn,
    SignupIn,
)
from .credentials import CredentialVerifier
from .identity import ExternalIdentity, IdentityResolver
from .tokens import ClaimsCodec, TokenPairOut, TokenService

__all__ = [
    # Shared DTOs
    "AccountOut",
    "AccountRecord",
    # Authentication
    "AuthenticationService",
    "SignupIn",
    "LoginIn",
    "PasswordChangeIn",
    "ProfileUpdateIn",
    # Tokens
    "ClaimsCodec",
    "TokenService",
    "TokenPairOut",
    # Credentials / identities
    "CredentialVerifier",
    "IdentityResolver",
    "ExternalIdentity",
]
