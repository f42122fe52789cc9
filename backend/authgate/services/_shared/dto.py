"""
Records shared by the ports and services.

:class:`AccountRecord` is the service-layer view of an account. Ports and
adapters exchange it instead of ORM instances so services stay free of
sessions and lazy loading.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from authgate.services._shared.enums import AuthProvider, Role
from authgate.services._shared.policies.common import normalize_email


@dataclass(slots=True)
class AccountRecord:
    """
    Mutable account record, as read from or written to the account directory.

    :param email: Login email, normalized on construction.
    :type email: str
    :param username: Display name (unique).
    :type username: str
    :param provider: Identity source; never changes after creation.
    :type provider: AuthProvider
    :param provider_id: Provider-assigned id, required iff ``provider`` is external.
    :type provider_id: str | None
    :param password_hash: Salted hash; ``None`` for external-only accounts.
    :type password_hash: str | None
    :param profile_image: Avatar URL.
    :type profile_image: str | None
    :param role: Account role.
    :type role: Role
    :param active: Whether the account may sign in.
    :type active: bool
    :param email_verified: Whether the email was asserted by a provider.
    :type email_verified: bool
    :param id: Surrogate key, assigned on first save.
    :type id: int | None
    """

    email: str
    username: str
    provider: AuthProvider = AuthProvider.LOCAL
    provider_id: str | None = None
    password_hash: str | None = None
    profile_image: str | None = None
    role: Role = Role.USER
    active: bool = True
    email_verified: bool = False
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        self.email = normalize_email(self.email)
        self.provider = AuthProvider(self.provider)
        self.role = Role(self.role)
        if self.provider.is_external and not self.provider_id:
            raise ValueError(f"{self.provider.value} accounts require a provider_id.")
        if not self.provider.is_external and self.provider_id is not None:
            raise ValueError("LOCAL accounts cannot carry a provider_id.")

    @property
    def can_sign_in_with_password(self) -> bool:
        return self.active and bool(self.password_hash)


@dataclass(frozen=True, slots=True)
class AccountOut:
    """
    Public-safe view of an account (no password hash).

    :param id: Account identifier.
    :type id: int
    :param email: Email address.
    :type email: str
    :param username: Display name.
    :type username: str
    :param profile_image: Avatar URL.
    :type profile_image: str | None
    :param role: ``ADMIN`` or ``USER``.
    :type role: str
    :param provider: Provider tag.
    :type provider: str
    :param email_verified: Whether the email is verified.
    :type email_verified: bool
    :param created_at: Creation timestamp.
    :type created_at: datetime | None
    """

    id: int
    email: str
    username: str
    profile_image: str | None
    role: str
    provider: str
    email_verified: bool
    created_at: datetime | None

    @classmethod
    def from_record(cls, record: AccountRecord) -> AccountOut:
        if record.id is None:
            raise ValueError("Account has not been saved yet.")
        return cls(
            id=record.id,
            email=record.email,
            username=record.username,
            profile_image=record.profile_image,
            role=record.role.value,
            provider=record.provider.value,
            email_verified=record.email_verified,
            created_at=record.created_at,
        )
