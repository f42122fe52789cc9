from .dto import LoginIn, PasswordChangeIn, ProfileUpdateIn, SignupIn
from .service import AuthenticationService

__all__ = [
    "AuthenticationService",
    "LoginIn",
    "PasswordChangeIn",
    "ProfileUpdateIn",
    "SignupIn",
]
