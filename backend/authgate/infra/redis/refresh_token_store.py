"""RefreshTokenStore on Redis with WATCH/MULTI/EXEC optimistic transactions."""

from __future__ import annotations

import hmac
import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, TypeVar

import redis  # type: ignore[import-untyped]
from redis.exceptions import RedisError, WatchError  # type: ignore[import-untyped]

from authgate.services._shared.errors import UnavailableError
from authgate.services._shared.ports.refresh_token_store import (
    RefreshTokenRecord,
    RefreshTokenStore,
    digest_token,
)

log = logging.getLogger(__name__)

T = TypeVar("T")

MAX_WATCH_RETRIES = 16


def _s(value: bytes | str | None) -> str | None:
    if value is None:
        return None
    return value.decode() if isinstance(value, bytes) else value


@dataclass(slots=True)
class RedisRefreshTokenStore(RefreshTokenStore):
    """
    Redis-backed store: one hash per account plus a digest → account index.

    Keys
    ----
    ``rt:a:{account_id}``
        Hash with ``digest``, ``expires_at`` and ``created_at`` (epoch seconds).
    ``rt:d:{digest}``
        Owning account id.

    Both keys expire with the token. Writes WATCH the account key and retry
    when another client changed it between read and ``EXEC``.

    :param r: A Redis client (already connected).
    """

    r: redis.Redis

    # -------------------- helpers --------------------

    @staticmethod
    def _ka(account_id: int) -> str:
        return f"rt:a:{account_id}"

    @staticmethod
    def _kd(digest: str) -> str:
        return f"rt:d:{digest}"

    @staticmethod
    def _to_ts(dt: datetime) -> int:
        return int(dt.timestamp())

    @contextmanager
    def _unavailable(self, operation: str) -> Iterator[None]:
        try:
            yield
        except RedisError as exc:
            raise UnavailableError(f"{operation} failed: redis unavailable") from exc

    def _watching(self, account_id: int, body: Callable[[Any], T]) -> T:
        """Run ``body(pipe)`` under WATCH on the account key, retrying on conflicts."""
        key = self._ka(account_id)
        for _ in range(MAX_WATCH_RETRIES):
            try:
                with self.r.pipeline() as pipe:
                    pipe.watch(key)
                    return body(pipe)
            except WatchError:
                log.debug("refresh store watch conflict", extra={"account_id": account_id})
                continue
        raise UnavailableError("refresh store contention: too many concurrent writes")

    def _write(self, pipe, account_id: int, previous: str | None, digest: str, expires_at: datetime, created_at: datetime) -> None:
        ttl = max(1, self._to_ts(expires_at) - self._to_ts(created_at))
        pipe.multi()
        if previous:
            pipe.delete(self._kd(previous))
        key = self._ka(account_id)
        pipe.delete(key)
        pipe.hset(
            key,
            mapping={
                "digest": digest,
                "expires_at": str(self._to_ts(expires_at)),
                "created_at": str(self._to_ts(created_at)),
            },
        )
        pipe.expire(key, ttl)
        pipe.set(self._kd(digest), str(account_id), ex=ttl)
        pipe.execute()

    def _record(self, account_id: int, raw: dict) -> RefreshTokenRecord | None:
        if not raw:
            return None
        fields = {_s(k): _s(v) for k, v in raw.items()}
        return RefreshTokenRecord(
            account_id=account_id,
            token_digest=fields["digest"] or "",
            expires_at=datetime.fromtimestamp(int(fields["expires_at"] or 0), UTC),
            created_at=datetime.fromtimestamp(int(fields["created_at"] or 0), UTC),
        )

    # -------------------- API ------------------------

    def put(
        self, *, account_id: int, token: str, expires_at: datetime, created_at: datetime
    ) -> None:
        digest = digest_token(token)

        def body(pipe) -> None:
            previous = _s(pipe.hget(self._ka(account_id), "digest"))
            self._write(pipe, account_id, previous, digest, expires_at, created_at)

        with self._unavailable("put"):
            self._watching(account_id, body)

    def swap(
        self,
        *,
        account_id: int,
        expected: str,
        token: str,
        expires_at: datetime,
        created_at: datetime,
    ) -> bool:
        expected_digest = digest_token(expected)
        digest = digest_token(token)

        def body(pipe) -> bool:
            current = _s(pipe.hget(self._ka(account_id), "digest"))
            if current is None or not hmac.compare_digest(current, expected_digest):
                pipe.unwatch()
                return False
            self._write(pipe, account_id, current, digest, expires_at, created_at)
            return True

        with self._unavailable("swap"):
            return self._watching(account_id, body)

    def find_by_token(self, token: str) -> RefreshTokenRecord | None:
        digest = digest_token(token)
        with self._unavailable("find_by_token"):
            owner = _s(self.r.get(self._kd(digest)))
            if owner is None:
                return None
            record = self._record(int(owner), self.r.hgetall(self._ka(int(owner))))
        if record is None or record.token_digest != digest:
            return None
        return record

    def find_by_account(self, account_id: int) -> RefreshTokenRecord | None:
        with self._unavailable("find_by_account"):
            return self._record(account_id, self.r.hgetall(self._ka(account_id)))

    def delete_by_account(self, account_id: int, *, token: str | None = None) -> bool:
        expected = digest_token(token) if token is not None else None

        def body(pipe) -> bool:
            current = _s(pipe.hget(self._ka(account_id), "digest"))
            if current is None or (
                expected is not None and not hmac.compare_digest(current, expected)
            ):
                pipe.unwatch()
                return False
            pipe.multi()
            pipe.delete(self._ka(account_id), self._kd(current))
            pipe.execute()
            return True

        with self._unavailable("delete_by_account"):
            return self._watching(account_id, body)
