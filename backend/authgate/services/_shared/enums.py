"""Enumerations shared by the domain records and the ORM models."""

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Account role. Re-read from the account on every request, never from a token."""

    ADMIN = "ADMIN"
    USER = "USER"


class AuthProvider(str, Enum):
    """Where an account's identity comes from."""

    LOCAL = "LOCAL"
    GITHUB = "GITHUB"
    GOOGLE = "GOOGLE"
    KAKAO = "KAKAO"

    @property
    def is_external(self) -> bool:
        return self is not AuthProvider.LOCAL

    @classmethod
    def parse(cls, tag: str) -> AuthProvider | None:
        """Match ``tag`` case-insensitively; ``None`` when unknown."""
        try:
            return cls(str(tag).strip().upper())
        except ValueError:
            return None
