from __future__ import annotations

import threading
from dataclasses import replace
from typing import Protocol

from authgate.services._shared.dto import AccountRecord
from authgate.services._shared.enums import AuthProvider
from authgate.services._shared.errors import (
    AccountNotFoundError,
    EmailTakenError,
    ProviderConflictError,
    UsernameTakenError,
)
from authgate.services._shared.policies.common import normalize_email
from authgate.services._shared.ports.clock import Clock, SystemClock


class AccountDirectory(Protocol):
    """
    Persistence port for accounts.

    Lookups return ``None`` when nothing matches. :meth:`save` inserts records
    without an id and updates the mutable fields of existing ones; the email,
    provider and provider id of a saved account never change.
    """

    def find_by_email(self, email: str) -> AccountRecord | None: ...

    def find_by_id(self, account_id: int) -> AccountRecord | None: ...

    def exists_by_email(self, email: str) -> bool: ...

    def exists_by_username(self, username: str) -> bool: ...

    def find_by_provider_and_external_id(
        self, provider: AuthProvider, external_id: str
    ) -> AccountRecord | None: ...

    def save(self, account: AccountRecord) -> AccountRecord:
        """
        Persist ``account`` and return the stored state (with id and timestamps).

        :raises EmailTakenError: Email already in use (insert only).
        :raises UsernameTakenError: Username already in use.
        :raises ProviderConflictError: ``(provider, provider_id)`` already linked.
        :raises AccountNotFoundError: Updating an id that does not exist.
        """
        ...


class InMemoryAccountDirectory(AccountDirectory):
    """Dict-backed directory enforcing the same uniqueness rules as the database."""

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()
        self._rows: dict[int, AccountRecord] = {}
        self._seq = 0
        self._lock = threading.Lock()

    def find_by_email(self, email: str) -> AccountRecord | None:
        key = normalize_email(email)
        with self._lock:
            row = next((r for r in self._rows.values() if r.email == key), None)
            return replace(row) if row else None

    def find_by_id(self, account_id: int) -> AccountRecord | None:
        with self._lock:
            row = self._rows.get(account_id)
            return replace(row) if row else None

    def exists_by_email(self, email: str) -> bool:
        return self.find_by_email(email) is not None

    def exists_by_username(self, username: str) -> bool:
        with self._lock:
            return any(r.username == username for r in self._rows.values())

    def find_by_provider_and_external_id(
        self, provider: AuthProvider, external_id: str
    ) -> AccountRecord | None:
        with self._lock:
            row = next(
                (
                    r
                    for r in self._rows.values()
                    if r.provider is provider and r.provider_id == external_id
                ),
                None,
            )
            return replace(row) if row else None

    def save(self, account: AccountRecord) -> AccountRecord:
        now = self._clock.now()
        with self._lock:
            others = [r for r in self._rows.values() if r.id != account.id]
            if any(r.username == account.username for r in others):
                raise UsernameTakenError(account.username)

            if account.id is None:
                if any(r.email == account.email for r in others):
                    raise EmailTakenError(account.email)
                if account.provider.is_external and any(
                    r.provider is account.provider and r.provider_id == account.provider_id
                    for r in others
                ):
                    raise ProviderConflictError(
                        existing=account.provider.value, requested=account.provider.value
                    )
                self._seq += 1
                stored = replace(account, id=self._seq, created_at=now, updated_at=now)
            else:
                current = self._rows.get(account.id)
                if current is None:
                    raise AccountNotFoundError(account.id)
                stored = replace(
                    current,
                    username=account.username,
                    password_hash=account.password_hash,
                    profile_image=account.profile_image,
                    role=account.role,
                    active=account.active,
                    email_verified=account.email_verified,
                    updated_at=now,
                )
            self._rows[stored.id] = stored  # type: ignore[index]
            return replace(stored)
