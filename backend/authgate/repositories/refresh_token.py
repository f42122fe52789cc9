"""Refresh token repository (rows keyed by account, tokens stored as digests)."""

from __future__ import annotations

from sqlalchemy import delete

from authgate.models.refresh_token import RefreshToken
from authgate.repositories.base import BaseRepository


class RefreshTokenRepository(BaseRepository[RefreshToken]):
    """Persistence-only repository for :class:`RefreshToken`."""

    model = RefreshToken

    def _filterable_fields(self):
        return {"account_id": RefreshToken.account_id, "token": RefreshToken.token}

    def _updatable_fields(self):
        return {"token", "expires_at", "created_at"}

    def get_by_account(self, account_id: int) -> RefreshToken | None:
        return self.find_one(account_id=account_id)

    def get_by_digest(self, digest: str) -> RefreshToken | None:
        return self.find_one(token=digest)

    def delete_for_account(self, account_id: int, *, digest: str | None = None) -> int:
        """Delete the account's row (only if it holds ``digest`` when given).

        :returns: Number of rows removed (0 or 1).
        """
        stmt = delete(RefreshToken).where(RefreshToken.account_id == account_id)
        if digest is not None:
            stmt = stmt.where(RefreshToken.token == digest)
        result = self.session.execute(stmt)
        return int(result.rowcount or 0)
