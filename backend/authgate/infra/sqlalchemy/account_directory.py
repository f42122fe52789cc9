"""AccountDirectory backed by the ``accounts`` table."""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from authgate.infra.sqlalchemy._base import SqlAlchemyAdapter, as_utc
from authgate.models.account import Account
from authgate.services._shared.dto import AccountRecord
from authgate.services._shared.enums import AuthProvider
from authgate.services._shared.errors import (
    AccountNotFoundError,
    EmailTakenError,
    ProviderConflictError,
    UsernameTakenError,
    violates,
)
from authgate.services._shared.policies.common import normalize_email
from authgate.services._shared.ports.account_directory import AccountDirectory
from authgate.services._shared.ports.clock import Clock, SystemClock


def to_record(row: Account) -> AccountRecord:
    """Copy an ORM row into a detached :class:`AccountRecord`."""
    return AccountRecord(
        id=row.id,
        email=row.email,
        username=row.username,
        provider=row.provider,
        provider_id=row.provider_id,
        password_hash=row.password_hash,
        profile_image=row.profile_image,
        role=row.role,
        active=row.active,
        email_verified=row.email_verified,
        created_at=as_utc(row.created_at) if row.created_at else None,
        updated_at=as_utc(row.updated_at) if row.updated_at else None,
    )


class SqlAlchemyAccountDirectory(SqlAlchemyAdapter, AccountDirectory):
    """
    :class:`AccountDirectory` on SQLAlchemy.

    Uniqueness is enforced by the database; violations of
    ``uq_accounts_email``, ``uq_accounts_username`` and
    ``uq_accounts_provider_external_id`` become the matching domain errors.

    :param clock: Source for ``created_at``/``updated_at``.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self.clock = clock or SystemClock()

    # ------------------------------ Reads ------------------------------------

    def find_by_email(self, email: str) -> AccountRecord | None:
        with self.unavailable_on_failure("find_by_email"), self.ro_uow() as uow:
            row = uow.accounts.get_by_email(normalize_email(email))
            return to_record(row) if row else None

    def find_by_id(self, account_id: int) -> AccountRecord | None:
        with self.unavailable_on_failure("find_by_id"), self.ro_uow() as uow:
            row = uow.accounts.get(account_id)
            return to_record(row) if row else None

    def exists_by_email(self, email: str) -> bool:
        with self.unavailable_on_failure("exists_by_email"), self.ro_uow() as uow:
            return uow.accounts.exists_by_email(normalize_email(email))

    def exists_by_username(self, username: str) -> bool:
        with self.unavailable_on_failure("exists_by_username"), self.ro_uow() as uow:
            return uow.accounts.exists_by_username(username)

    def find_by_provider_and_external_id(
        self, provider: AuthProvider, external_id: str
    ) -> AccountRecord | None:
        with self.unavailable_on_failure("find_by_provider"), self.ro_uow() as uow:
            row = uow.accounts.get_by_provider_id(AuthProvider(provider), external_id)
            return to_record(row) if row else None

    # ------------------------------ Writes -----------------------------------

    def save(self, account: AccountRecord) -> AccountRecord:
        now = self.clock.now()
        try:
            with self.unavailable_on_failure("save"), self.rw_uow() as uow:
                if account.id is None:
                    row = uow.accounts.add(
                        Account(
                            email=account.email,
                            username=account.username,
                            password_hash=account.password_hash,
                            profile_image=account.profile_image,
                            role=account.role,
                            provider=account.provider,
                            provider_id=account.provider_id,
                            active=account.active,
                            email_verified=account.email_verified,
                            created_at=now,
                            updated_at=now,
                        )
                    )
                else:
                    row = uow.accounts.get(account.id)
                    if row is None:
                        raise AccountNotFoundError(account.id)
                    uow.accounts.assign_updates(
                        row,
                        {
                            "username": account.username,
                            "password_hash": account.password_hash,
                            "profile_image": account.profile_image,
                            "role": account.role,
                            "active": account.active,
                            "email_verified": account.email_verified,
                        },
                        flush=False,
                    )
                    row.updated_at = now
                    uow.accounts.flush()
                saved = to_record(row)
        except IntegrityError as exc:
            conflict = self._conflict(exc, account)
            if conflict is None:
                raise
            raise conflict from exc
        return saved

    @staticmethod
    def _conflict(exc: IntegrityError, account: AccountRecord) -> Exception | None:
        if violates(exc, "uq_accounts_email"):
            return EmailTakenError(account.email)
        if violates(exc, "uq_accounts_username"):
            return UsernameTakenError(account.username)
        if violates(exc, "uq_accounts_provider_external_id"):
            return ProviderConflictError(
                existing=account.provider.value,
                requested=account.provider.value,
                detail=f"this {account.provider.value} identity is linked to another email",
            )
        return None
