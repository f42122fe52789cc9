"""Refresh token model: one live record per account."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from authgate.core.extensions import db

from .base import PKMixin, ReprMixin


class RefreshToken(PKMixin, ReprMixin, db.Model):
    """
    Current refresh token of an account.

    Fields
    ------
    account_id : int
        Owner. Unique, so an account never holds two live tokens.
        ``ON DELETE CASCADE``.
    token : str
        SHA-256 hex digest of the token string. The raw token is never stored.
    expires_at : datetime
        Absolute expiry (UTC).
    created_at : datetime
        Issuance time (UTC); replaced on every rotation.
    """

    __tablename__ = "refresh_tokens"

    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    token: Mapped[str] = mapped_column(String(64), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    account = relationship("Account", back_populates="refresh_token")

    __table_args__ = (
        UniqueConstraint("account_id", name="uq_refresh_tokens_account_id"),
        UniqueConstraint("token", name="uq_refresh_tokens_token"),
    )
