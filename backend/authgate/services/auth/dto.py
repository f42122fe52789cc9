# authgate/services/auth/dto.py
from __future__ import annotations

from dataclasses import dataclass

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class SignupIn:
    """
    Input DTO for local signup.

    :param email: Login email (normalized by the service).
    :type email: str
    :param password: Raw password, hashed before storage.
    :type password: str
    :param username: Display name; must be unique.
    :type username: str
    """

    email: str
    password: str
    username: str


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param email: Login email.
    :type email: str
    :param password: Raw password (to be verified).
    :type password: str
    """

    email: str
    password: str


@dataclass(frozen=True, slots=True)
class PasswordChangeIn:
    """
    Input DTO for changing a password.

    :param account_id: Verified caller id.
    :type account_id: int
    :param current_password: Password currently on file.
    :type current_password: str
    :param new_password: Replacement password (raw).
    :type new_password: str
    """

    account_id: int
    current_password: str
    new_password: str


@dataclass(frozen=True, slots=True)
class ProfileUpdateIn:
    """
    Input DTO for profile edits; ``None`` leaves a field unchanged.

    :param account_id: Verified caller id.
    :type account_id: int
    :param username: New display name.
    :type username: str | None
    :param profile_image: New avatar URL.
    :type profile_image: str | None
    """

    account_id: int
    username: str | None = None
    profile_image: str | None = None
