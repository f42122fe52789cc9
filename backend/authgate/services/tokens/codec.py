"""
Signed bearer token encoding (HS256 JWT via PyJWT).

The codec is pure: it reads the clock and the signing key and performs no
I/O. Tokens carry ``sub``, ``iat`` and ``exp``; ``typ`` separates access from
refresh tokens and ``jti`` is a random nonce so two tokens minted in the same
second differ. Nothing else in a token is trusted: roles are re-read from the
account on every request.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Final
from uuid import uuid4

import jwt

from authgate.services._shared.errors import (
    BadSignatureError,
    InvalidTokenError,
    MalformedTokenError,
    TokenExpiredError,
    UnsupportedTokenError,
)
from authgate.services._shared.ports.clock import Clock, SystemClock

ALGORITHM: Final[str] = "HS256"
ACCESS: Final[str] = "access"
REFRESH: Final[str] = "refresh"


@dataclass(frozen=True, slots=True)
class TokenClaims:
    """
    Verified token content.

    :param subject: Account id, string-encoded.
    :type subject: str
    :param issued_at: ``iat`` as an aware UTC datetime.
    :type issued_at: datetime
    :param expires_at: ``exp`` as an aware UTC datetime.
    :type expires_at: datetime
    :param kind: ``access`` or ``refresh`` (``None`` when absent).
    :type kind: str | None
    """

    subject: str
    issued_at: datetime
    expires_at: datetime
    kind: str | None = None

    @property
    def account_id(self) -> int:
        try:
            return int(self.subject)
        except (TypeError, ValueError) as exc:
            raise MalformedTokenError("Token subject is not an account id.") from exc


class ClaimsCodec:
    """
    Issue and verify HS256-signed tokens.

    :param signing_key: HMAC key, loaded once from configuration.
    :type signing_key: bytes
    :param clock: Time source for ``iat``/``exp`` and expiry checks.
    :type clock: Clock | None
    """

    def __init__(self, signing_key: bytes, *, clock: Clock | None = None) -> None:
        if not signing_key:
            raise ValueError("signing_key must not be empty.")
        self._key = signing_key
        self._clock = clock or SystemClock()

    def issue(self, subject: int | str, ttl: timedelta, *, kind: str = ACCESS) -> str:
        """
        Produce a signed token expiring ``ttl`` from now.

        :param subject: Account id.
        :param ttl: Lifetime; must be positive.
        :param kind: Token kind written to ``typ``.
        :returns: Compact JWS string.
        """
        if ttl <= timedelta(0):
            raise ValueError("ttl must be positive.")
        now = self._clock.now()
        payload: dict[str, Any] = {
            "sub": str(subject),
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
            "typ": kind,
            "jti": uuid4().hex,
        }
        return jwt.encode(payload, self._key, algorithm=ALGORITHM)

    def verify(self, token: str, *, kind: str | None = None) -> TokenClaims:
        """
        Verify ``token`` and return its claims.

        Checks run in order: structure, signing scheme, signature, kind,
        expiry. The first failure wins.

        :param token: Compact JWS string.
        :param kind: Expected ``typ``; ``None`` accepts any kind.
        :raises MalformedTokenError: Unparseable token or missing claims.
        :raises UnsupportedTokenError: Signed with anything other than HS256.
        :raises BadSignatureError: Signature does not verify.
        :raises InvalidTokenError: Wrong token kind.
        :raises TokenExpiredError: ``now > exp``; carries the verified claims.
        """
        if not isinstance(token, str) or not token:
            raise MalformedTokenError("Token is empty.")
        try:
            header = jwt.get_unverified_header(token)
        except jwt.DecodeError as exc:
            raise MalformedTokenError("Token cannot be parsed.") from exc
        if header.get("alg") != ALGORITHM:
            raise UnsupportedTokenError(f"Unsupported signing scheme: {header.get('alg')!r}")

        try:
            payload = jwt.decode(
                token,
                self._key,
                algorithms=[ALGORITHM],
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                    "require": ["sub", "iat", "exp"],
                },
            )
        except jwt.InvalidSignatureError as exc:
            raise BadSignatureError("Token signature is invalid.") from exc
        except jwt.InvalidAlgorithmError as exc:
            raise UnsupportedTokenError("Unsupported signing scheme.") from exc
        except jwt.InvalidTokenError as exc:
            raise MalformedTokenError("Token claims are malformed.") from exc

        claims = _claims_from(payload)
        if kind is not None and claims.kind != kind:
            raise InvalidTokenError(f"Expected a {kind} token.")
        if self._clock.now() > claims.expires_at:
            raise TokenExpiredError(claims=claims)
        return claims

    def subject_of(self, token: str, *, kind: str | None = None) -> int:
        """Verify ``token`` and return its subject as an account id."""
        return self.verify(token, kind=kind).account_id


def _claims_from(payload: dict[str, Any]) -> TokenClaims:
    try:
        issued_at = datetime.fromtimestamp(int(payload["iat"]), UTC)
        expires_at = datetime.fromtimestamp(int(payload["exp"]), UTC)
    except (TypeError, ValueError, OverflowError, OSError) as exc:
        raise MalformedTokenError("Token timestamps are malformed.") from exc
    kind = payload.get("typ")
    return TokenClaims(
        subject=str(payload["sub"]),
        issued_at=issued_at,
        expires_at=expires_at,
        kind=str(kind) if kind is not None else None,
    )
