"""Issue, rotate and revoke token pairs."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from authgate.services._shared.errors import (
    RevokedOrUnknownTokenError,
    TokenExpiredError,
)
from authgate.services._shared.ports.clock import Clock, SystemClock
from authgate.services._shared.ports.refresh_token_store import RefreshTokenStore
from authgate.services.tokens.codec import ACCESS, REFRESH, ClaimsCodec
from authgate.services.tokens.dto import TokenPairOut

log = logging.getLogger(__name__)


class TokenService:
    """
    Token lifecycle on top of :class:`ClaimsCodec` and a refresh token store.

    Rotation is strict one-shot: a refresh token can be exchanged once, after
    which it fails with :class:`RevokedOrUnknownTokenError`. Nothing is retried
    internally, so a store failure never double-issues a pair.

    :param codec: Token signer/verifier.
    :param store: Single-active-token-per-account registry.
    :param access_ttl: Access token lifetime.
    :param refresh_ttl: Refresh token lifetime.
    :param clock: Time source shared with the codec.
    """

    def __init__(
        self,
        *,
        codec: ClaimsCodec,
        store: RefreshTokenStore,
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
        clock: Clock | None = None,
    ) -> None:
        self.codec = codec
        self.store = store
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.clock = clock or SystemClock()

    # ------------------------------------------------------------------ #
    # Issue
    # ------------------------------------------------------------------ #

    def _mint(self, account_id: int) -> tuple[TokenPairOut, datetime]:
        now = self.clock.now()
        pair = TokenPairOut(
            access_token=self.codec.issue(account_id, self.access_ttl, kind=ACCESS),
            refresh_token=self.codec.issue(account_id, self.refresh_ttl, kind=REFRESH),
            expires_in=int(self.access_ttl.total_seconds()),
        )
        return pair, now

    def issue_pair(self, account_id: int) -> TokenPairOut:
        """
        Issue a fresh pair and make its refresh token the account's only one.

        Any previously stored refresh token for the account stops working.

        :param account_id: Authenticated account.
        :returns: Access/refresh pair.
        :raises UnavailableError: If the store cannot be written.
        """
        pair, now = self._mint(account_id)
        self.store.put(
            account_id=account_id,
            token=pair.refresh_token,
            expires_at=now + self.refresh_ttl,
            created_at=now,
        )
        return pair

    # ------------------------------------------------------------------ #
    # Rotate
    # ------------------------------------------------------------------ #

    def rotate(self, refresh_token: str) -> TokenPairOut:
        """
        Exchange a refresh token for a brand-new pair.

        :param refresh_token: Token presented by the client.
        :returns: New access/refresh pair; the presented token is spent.
        :raises InvalidTokenError: Codec verification failed (any subclass).
        :raises TokenExpiredError: The token or its stored record expired; the
            stored record is deleted.
        :raises RevokedOrUnknownTokenError: Not the account's current token
            (revoked, already rotated, or lost a concurrent rotation).
        """
        try:
            claims = self.codec.verify(refresh_token, kind=REFRESH)
        except TokenExpiredError as exc:
            if exc.claims is not None:
                self._drop_expired(exc.claims.account_id, refresh_token)
            raise

        account_id = claims.account_id
        record = self.store.find_by_account(account_id)
        if record is None or not record.matches(refresh_token):
            log.warning(
                "auth.refresh.replay",
                extra={"event": "auth.refresh.replay", "account_id": account_id},
            )
            raise RevokedOrUnknownTokenError("Refresh token is revoked or unknown.")

        if record.is_expired(self.clock.now()):
            self._drop_expired(account_id, refresh_token)
            raise TokenExpiredError("Refresh token expired.", claims=claims)

        pair, now = self._mint(account_id)
        swapped = self.store.swap(
            account_id=account_id,
            expected=refresh_token,
            token=pair.refresh_token,
            expires_at=now + self.refresh_ttl,
            created_at=now,
        )
        if not swapped:
            log.warning(
                "auth.refresh.replay",
                extra={"event": "auth.refresh.replay", "account_id": account_id},
            )
            raise RevokedOrUnknownTokenError("Refresh token was already rotated.")

        log.info(
            "auth.refresh.rotated",
            extra={"event": "auth.refresh.rotated", "account_id": account_id},
        )
        return pair

    def _drop_expired(self, account_id: int, refresh_token: str) -> None:
        # Only the presented token is removed; a newer session stays intact.
        self.store.delete_by_account(account_id, token=refresh_token)

    # ------------------------------------------------------------------ #
    # Revoke / authenticate
    # ------------------------------------------------------------------ #

    def revoke(self, account_id: int) -> bool:
        """
        Delete the account's stored refresh token. Idempotent.

        :returns: ``True`` if a token was removed.
        """
        return self.store.delete_by_account(account_id)

    def revoke_token(self, refresh_token: str) -> bool:
        """
        Revoke the session a refresh token belongs to.

        The token must verify (an expired one is accepted); revoking an
        already-replaced token is a no-op.

        :raises InvalidTokenError: If the token does not verify.
        """
        try:
            claims = self.codec.verify(refresh_token, kind=REFRESH)
        except TokenExpiredError as exc:
            if exc.claims is None:
                raise
            claims = exc.claims
        return self.store.delete_by_account(claims.account_id, token=refresh_token)

    def authenticate(self, access_token: str) -> int:
        """
        Verify an access token and return the caller's account id.

        :raises InvalidTokenError: On any verification failure, including a
            refresh token presented as an access token.
        """
        return self.codec.subject_of(access_token, kind=ACCESS)
