"""RefreshTokenStore backed by the ``refresh_tokens`` table."""

from __future__ import annotations

import hmac
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime

from sqlalchemy.exc import IntegrityError

from authgate.infra.sqlalchemy._base import SqlAlchemyAdapter, as_utc
from authgate.models.refresh_token import RefreshToken
from authgate.services._shared.errors import AccountNotFoundError, UnavailableError
from authgate.services._shared.ports.refresh_token_store import (
    RefreshTokenRecord,
    RefreshTokenStore,
    digest_token,
)


def to_record(row: RefreshToken) -> RefreshTokenRecord:
    return RefreshTokenRecord(
        account_id=row.account_id,
        token_digest=row.token,
        expires_at=as_utc(row.expires_at),
        created_at=as_utc(row.created_at),
    )


class SqlAlchemyRefreshTokenStore(SqlAlchemyAdapter, RefreshTokenStore):
    """
    :class:`RefreshTokenStore` on SQLAlchemy.

    Writes lock the owning account row (``SELECT ... FOR UPDATE``) for the
    length of the transaction, so writes for one account serialize; the unique
    constraint on ``account_id`` backs that up.
    """

    def put(
        self, *, account_id: int, token: str, expires_at: datetime, created_at: datetime
    ) -> None:
        with self._writing("put"), self.rw_uow() as uow:
            if uow.accounts.get_for_update(account_id) is None:
                raise AccountNotFoundError(account_id)
            self._store(uow, account_id, digest_token(token), expires_at, created_at)

    def swap(
        self,
        *,
        account_id: int,
        expected: str,
        token: str,
        expires_at: datetime,
        created_at: datetime,
    ) -> bool:
        with self._writing("swap"), self.rw_uow() as uow:
            if uow.accounts.get_for_update(account_id) is None:
                return False
            current = uow.refresh_tokens.get_by_account(account_id)
            if current is None or not hmac.compare_digest(current.token, digest_token(expected)):
                return False
            self._store(uow, account_id, digest_token(token), expires_at, created_at)
            return True

    def find_by_token(self, token: str) -> RefreshTokenRecord | None:
        with self.unavailable_on_failure("find_by_token"), self.ro_uow() as uow:
            row = uow.refresh_tokens.get_by_digest(digest_token(token))
            return to_record(row) if row else None

    def find_by_account(self, account_id: int) -> RefreshTokenRecord | None:
        with self.unavailable_on_failure("find_by_account"), self.ro_uow() as uow:
            row = uow.refresh_tokens.get_by_account(account_id)
            return to_record(row) if row else None

    def delete_by_account(self, account_id: int, *, token: str | None = None) -> bool:
        digest = digest_token(token) if token is not None else None
        with self._writing("delete_by_account"), self.rw_uow() as uow:
            return uow.refresh_tokens.delete_for_account(account_id, digest=digest) > 0

    # ------------------------------ Internals --------------------------------

    @staticmethod
    def _store(uow, account_id: int, digest: str, expires_at: datetime, created_at: datetime):
        row = uow.refresh_tokens.get_by_account(account_id)
        if row is None:
            uow.refresh_tokens.add(
                RefreshToken(
                    account_id=account_id,
                    token=digest,
                    expires_at=expires_at,
                    created_at=created_at,
                )
            )
        else:
            uow.refresh_tokens.assign_updates(
                row, {"token": digest, "expires_at": expires_at, "created_at": created_at}
            )

    @contextmanager
    def _writing(self, operation: str) -> Iterator[None]:
        # A unique violation here means a concurrent first write for the account.
        try:
            with self.unavailable_on_failure(operation):
                yield
        except IntegrityError as exc:
            raise UnavailableError(f"{operation} failed: concurrent write") from exc
