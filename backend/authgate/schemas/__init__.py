"""Convenience exports for application schemas."""

from __future__ import annotations

from .auth import (
    AccountSchema,
    LoginSchema,
    LogoutSchema,
    PasswordChangeSchema,
    ProfileUpdateSchema,
    RefreshSchema,
    SignupSchema,
    TokenResponseSchema,
)

__all__ = [
    "AccountSchema",
    "LoginSchema",
    "LogoutSchema",
    "PasswordChangeSchema",
    "ProfileUpdateSchema",
    "RefreshSchema",
    "SignupSchema",
    "TokenResponseSchema",
]
