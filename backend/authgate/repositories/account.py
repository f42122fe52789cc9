"""Account repository."""

from __future__ import annotations

from sqlalchemy import select

from authgate.models.account import Account
from authgate.repositories.base import BaseRepository
from authgate.services._shared.enums import AuthProvider


class AccountRepository(BaseRepository[Account]):
    """Persistence-only repository for :class:`Account`.

    Never hashes passwords or issues tokens; services do that.
    """

    model = Account

    def _filterable_fields(self):
        return {
            "email": Account.email,
            "username": Account.username,
            "provider": Account.provider,
            "provider_id": Account.provider_id,
        }

    def _updatable_fields(self):
        # email, provider and provider_id are fixed at creation
        return {"username", "password_hash", "profile_image", "role", "active", "email_verified"}

    def get_by_email(self, email: str) -> Account | None:
        """Fetch an account by normalized email."""
        return self.find_one(email=email.strip().lower())

    def exists_by_email(self, email: str) -> bool:
        return self.exists(email=email.strip().lower())

    def exists_by_username(self, username: str) -> bool:
        return self.exists(username=username)

    def get_by_provider_id(self, provider: AuthProvider, provider_id: str) -> Account | None:
        stmt = select(Account).where(
            Account.provider == provider, Account.provider_id == provider_id
        )
        return self.session.execute(stmt).scalars().first()
