"""Account model: the identity of record for local and external sign-ins."""

from __future__ import annotations

from sqlalchemy import Boolean, CheckConstraint, String, UniqueConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from authgate.core.extensions import db
from authgate.services._shared.enums import AuthProvider, Role

from .base import PKMixin, ReprMixin, TimestampMixin


class Account(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    Persisted account.

    Fields
    ------
    email : str
        Login email. Stored normalized (lowercase, trimmed). Globally unique.
    username : str
        Display name. Unique per system.
    password_hash : str | None
        Salted hash; ``None`` for accounts created from an external provider.
    profile_image : str | None
        Avatar URL.
    role : Role
        ``ADMIN`` or ``USER``.
    provider : AuthProvider
        Fixed at creation. ``LOCAL`` or an external provider tag.
    provider_id : str | None
        Provider-assigned id; present only for external providers.
    active : bool
        Inactive accounts cannot sign in.
    email_verified : bool
        ``True`` when the provider asserted the email.
    """

    __tablename__ = "accounts"

    email: Mapped[str] = mapped_column(String(254), nullable=False)
    username: Mapped[str] = mapped_column(String(50), nullable=False)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    profile_image: Mapped[str | None] = mapped_column(String(512), nullable=True)
    role: Mapped[Role] = mapped_column(
        SAEnum(Role, name="account_role", native_enum=False, length=16),
        nullable=False,
        default=Role.USER,
    )
    provider: Mapped[AuthProvider] = mapped_column(
        SAEnum(AuthProvider, name="auth_provider", native_enum=False, length=16),
        nullable=False,
        default=AuthProvider.LOCAL,
    )
    provider_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    refresh_token = relationship(
        "RefreshToken",
        back_populates="account",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("email", name="uq_accounts_email"),
        UniqueConstraint("username", name="uq_accounts_username"),
        UniqueConstraint("provider", "provider_id", name="uq_accounts_provider_external_id"),
        CheckConstraint(
            "(provider = 'LOCAL' AND provider_id IS NULL) "
            "OR (provider <> 'LOCAL' AND provider_id IS NOT NULL)",
            name="provider_id_matches_provider",
        ),
    )

    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        """
        Normalize and sanity-check the email.

        :raises ValueError: If email is missing or malformed.
        """
        if not value or not isinstance(value, str):
            raise ValueError("Email is required.")
        v = value.strip().lower()
        if "@" not in v:
            raise ValueError("Email format looks invalid.")
        return v

    @validates("username")
    def _normalize_username(self, key: str, value: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Username is required.")
        return value.strip()
