from __future__ import annotations

import hashlib
import hmac
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol


def digest_token(token: str) -> str:
    """SHA-256 hex digest of a refresh token; the only form stores persist."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


@dataclass(frozen=True, slots=True)
class RefreshTokenRecord:
    """
    Read-model of the refresh token currently held by an account.

    :ivar account_id: Owner account id.
    :ivar token_digest: SHA-256 hex digest of the token string.
    :ivar expires_at: Absolute expiration (UTC).
    :ivar created_at: Issuance time (UTC).
    """

    account_id: int
    token_digest: str
    expires_at: datetime
    created_at: datetime

    def matches(self, token: str) -> bool:
        """Constant-time check that ``token`` is the stored one."""
        return hmac.compare_digest(self.token_digest, digest_token(token))

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


class RefreshTokenStore(Protocol):
    """
    Single-active-token-per-account registry.

    Writes for one account id are linearizable: :meth:`put` replaces the
    previous token atomically and :meth:`swap` is a compare-and-swap, so of two
    racing rotations exactly one succeeds. Adapters raise
    :class:`~authgate.services._shared.errors.UnavailableError` on backend
    faults and never retry internally.
    """

    def put(
        self, *, account_id: int, token: str, expires_at: datetime, created_at: datetime
    ) -> None:
        """Store ``token`` as the account's only token, replacing any previous one."""

    def swap(
        self,
        *,
        account_id: int,
        expected: str,
        token: str,
        expires_at: datetime,
        created_at: datetime,
    ) -> bool:
        """
        Replace the stored token only if it is still ``expected``.

        :returns: ``False`` when the current token differs or is absent.
        """

    def find_by_token(self, token: str) -> RefreshTokenRecord | None:
        """Return the record holding ``token``, or ``None``."""

    def find_by_account(self, account_id: int) -> RefreshTokenRecord | None:
        """Return the account's current record, or ``None``."""

    def delete_by_account(self, account_id: int, *, token: str | None = None) -> bool:
        """
        Remove the account's token. Idempotent.

        :param token: When given, delete only if it is still the current token.
        :returns: ``True`` if a record was removed.
        """


class InMemoryRefreshTokenStore(RefreshTokenStore):
    """
    Dict-backed store for tests and single-process development.

    .. note::
       A single lock makes every operation atomic.
    """

    def __init__(self) -> None:
        self._by_account: dict[int, RefreshTokenRecord] = {}
        self._by_digest: dict[str, int] = {}
        self._lock = threading.Lock()

    def _write(self, record: RefreshTokenRecord) -> None:
        previous = self._by_account.get(record.account_id)
        if previous is not None:
            self._by_digest.pop(previous.token_digest, None)
        self._by_account[record.account_id] = record
        self._by_digest[record.token_digest] = record.account_id

    def put(
        self, *, account_id: int, token: str, expires_at: datetime, created_at: datetime
    ) -> None:
        record = RefreshTokenRecord(account_id, digest_token(token), expires_at, created_at)
        with self._lock:
            self._write(record)

    def swap(
        self,
        *,
        account_id: int,
        expected: str,
        token: str,
        expires_at: datetime,
        created_at: datetime,
    ) -> bool:
        record = RefreshTokenRecord(account_id, digest_token(token), expires_at, created_at)
        with self._lock:
            current = self._by_account.get(account_id)
            if current is None or not current.matches(expected):
                return False
            self._write(record)
            return True

    def find_by_token(self, token: str) -> RefreshTokenRecord | None:
        with self._lock:
            account_id = self._by_digest.get(digest_token(token))
            return None if account_id is None else self._by_account.get(account_id)

    def find_by_account(self, account_id: int) -> RefreshTokenRecord | None:
        with self._lock:
            return self._by_account.get(account_id)

    def delete_by_account(self, account_id: int, *, token: str | None = None) -> bool:
        with self._lock:
            current = self._by_account.get(account_id)
            if current is None:
                return False
            if token is not None and not current.matches(token):
                return False
            del self._by_account[account_id]
            self._by_digest.pop(current.token_digest, None)
            return True
