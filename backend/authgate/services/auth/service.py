# authgate/services/auth/service.py
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, NoReturn

from authgate.services._shared.dto import AccountOut, AccountRecord
from authgate.services._shared.enums import AuthProvider, Role
from authgate.services._shared.errors import (
    AccountNotFoundError,
    EmailTakenError,
    InvalidCredentialsError,
    UsernameTakenError,
)
from authgate.services._shared.policies.common import normalize_email
from authgate.services._shared.ports.account_directory import AccountDirectory
from authgate.services._shared.ports.clock import Clock, SystemClock
from authgate.services.auth.dto import LoginIn, PasswordChangeIn, ProfileUpdateIn, SignupIn
from authgate.services.credentials.verifier import CredentialVerifier
from authgate.services.identity.resolver import IdentityResolver
from authgate.services.tokens.dto import TokenPairOut
from authgate.services.tokens.service import TokenService

log = logging.getLogger(__name__)


class AuthenticationService:
    """
    Authentication use cases: signup, login (password or provider), refresh,
    logout, password change and profile management.

    Stateless between calls; every piece of state lives in the account
    directory and the refresh token store. Operations that act on the caller
    receive the verified ``account_id`` explicitly.

    :param accounts: Account directory port.
    :param verifier: Password hasher/checker.
    :param tokens: Token lifecycle service.
    :param identities: Provider payload resolver.
    :param clock: Time source.
    """

    def __init__(
        self,
        *,
        accounts: AccountDirectory,
        verifier: CredentialVerifier,
        tokens: TokenService,
        identities: IdentityResolver,
        clock: Clock | None = None,
    ) -> None:
        self.accounts = accounts
        self.verifier = verifier
        self.tokens = tokens
        self.identities = identities
        self.clock = clock or SystemClock()
        # Hash checked when the email is unknown so both paths cost the same.
        self._decoy_digest = verifier.hash("authgate-decoy-password")

    # ------------------------------------------------------------------ #
    # Signup / login
    # ------------------------------------------------------------------ #

    def create_local_account(
        self, *, email: str, password: str, username: str, role: Role = Role.USER
    ) -> AccountRecord:
        """
        Create a LOCAL account with a hashed password.

        :raises EmailTakenError: Email already registered.
        :raises UsernameTakenError: Username already in use.
        """
        email = normalize_email(email)
        if self.accounts.exists_by_email(email):
            raise EmailTakenError(email)
        if self.accounts.exists_by_username(username):
            raise UsernameTakenError(username)
        return self.accounts.save(
            AccountRecord(
                email=email,
                username=username,
                provider=AuthProvider.LOCAL,
                password_hash=self.verifier.hash(password),
                role=role,
                active=True,
                email_verified=False,
            )
        )

    def signup(self, dto: SignupIn) -> TokenPairOut:
        """
        Register a LOCAL account and sign it in.

        :returns: Access/refresh pair for the new account.
        :raises EmailTakenError: Email already registered.
        :raises UsernameTakenError: Username already in use.
        """
        account = self.create_local_account(
            email=dto.email, password=dto.password, username=dto.username
        )
        log.info("auth.signup", extra={"event": "auth.signup", "account_id": account.id})
        return self._issue(account)

    def login(self, dto: LoginIn) -> TokenPairOut:
        """
        Check email and password and issue a token pair.

        Unknown email, wrong password, inactive and password-less accounts all
        fail the same way so callers cannot enumerate accounts.

        :raises InvalidCredentialsError: On any credential failure.
        """
        try:
            account = self.accounts.find_by_email(dto.email)
        except ValueError:
            account = None

        if account is None or not account.can_sign_in_with_password:
            self.verifier.matches(dto.password, self._decoy_digest)
            self._login_failed(account.id if account is not None else None)
        if not self.verifier.matches(dto.password, account.password_hash):
            self._login_failed(account.id)
        return self._issue(account)

    def login_with_provider(self, provider: str, attrs: Mapping[str, Any]) -> TokenPairOut:
        """
        Sign in with a provider-asserted identity, creating the account on first use.

        Resolver errors propagate unchanged.

        :raises UnsupportedProviderError: Unknown provider tag.
        :raises MissingEmailError: Provider gave no email.
        :raises ProviderConflictError: Email bound to another provider.
        :raises InvalidCredentialsError: The account is inactive.
        """
        identity = self.identities.resolve(provider, attrs)
        account = self.identities.reconcile(identity)
        if not account.active:
            self._login_failed(account.id)
        return self._issue(account)

    def _issue(self, account: AccountRecord) -> TokenPairOut:
        pair = self.tokens.issue_pair(account.id)  # type: ignore[arg-type]
        log.info(
            "auth.login.success",
            extra={
                "event": "auth.login.success",
                "account_id": account.id,
                "provider": account.provider.value,
            },
        )
        return pair

    def _login_failed(self, account_id: int | None) -> NoReturn:
        log.warning(
            "auth.login.failed", extra={"event": "auth.login.failed", "account_id": account_id}
        )
        raise InvalidCredentialsError()

    # ------------------------------------------------------------------ #
    # Tokens
    # ------------------------------------------------------------------ #

    def refresh(self, refresh_token: str) -> TokenPairOut:
        """Rotate ``refresh_token``; see :meth:`TokenService.rotate`."""
        return self.tokens.rotate(refresh_token)

    def logout(self, *, account_id: int | None = None, refresh_token: str | None = None) -> None:
        """
        Revoke the caller's refresh token, by account id or by the token itself.

        Idempotent: logging out twice is not an error.

        :raises ValueError: If neither argument is given.
        :raises InvalidTokenError: If ``refresh_token`` does not verify.
        """
        if account_id is None and refresh_token is None:
            raise ValueError("logout needs an account_id or a refresh_token")
        if account_id is not None:
            self.tokens.revoke(account_id)
        else:
            self.tokens.revoke_token(refresh_token)  # type: ignore[arg-type]
        log.info("auth.logout", extra={"event": "auth.logout", "account_id": account_id})

    def authenticate(self, access_token: str) -> int:
        """Return the account id behind a valid access token."""
        return self.tokens.authenticate(access_token)

    # ------------------------------------------------------------------ #
    # Account
    # ------------------------------------------------------------------ #

    def _require(self, account_id: int) -> AccountRecord:
        account = self.accounts.find_by_id(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    def change_password(self, dto: PasswordChangeIn) -> None:
        """
        Replace the password after checking the current one.

        :raises AccountNotFoundError: Unknown account.
        :raises InvalidCredentialsError: Current password does not match, or
            the account has no password (external-only).
        """
        account = self._require(dto.account_id)
        if not self.verifier.matches(dto.current_password, account.password_hash):
            self._login_failed(account.id)
        account.password_hash = self.verifier.hash(dto.new_password)
        self.accounts.save(account)
        log.info(
            "auth.password.changed",
            extra={"event": "auth.password.changed", "account_id": account.id},
        )

    def get_account(self, account_id: int) -> AccountOut:
        """
        :raises AccountNotFoundError: Unknown account.
        """
        return AccountOut.from_record(self._require(account_id))

    def update_profile(self, dto: ProfileUpdateIn) -> AccountOut:
        """
        Change the display name and/or avatar.

        :raises AccountNotFoundError: Unknown account.
        :raises UsernameTakenError: Another account uses the new name.
        """
        account = self._require(dto.account_id)
        if dto.username is not None and dto.username != account.username:
            if self.accounts.exists_by_username(dto.username):
                raise UsernameTakenError(dto.username)
            account.username = dto.username
        if dto.profile_image is not None:
            account.profile_image = dto.profile_image
        return AccountOut.from_record(self.accounts.save(account))
