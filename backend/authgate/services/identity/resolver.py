"""Turn provider payloads into accounts."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any, NoReturn

from authgate.services._shared.dto import AccountRecord
from authgate.services._shared.enums import AuthProvider, Role
from authgate.services._shared.errors import (
    EmailTakenError,
    IncompleteIdentityError,
    ProviderConflictError,
    UnsupportedProviderError,
    UsernameTakenError,
)
from authgate.services._shared.locks import KeyedLock
from authgate.services._shared.policies.common import username_candidates, username_seed
from authgate.services._shared.ports.account_directory import AccountDirectory
from authgate.services.identity.providers import EXTRACTORS, ExternalIdentity

log = logging.getLogger(__name__)


class IdentityResolver:
    """
    Map provider payloads to :class:`ExternalIdentity` and reconcile them
    with the account directory.

    Accounts are keyed by email. An email bound to one provider is never
    silently merged into another: that is a :class:`ProviderConflictError`.

    :param accounts: Account directory port.
    :param locks: Per-email lock serializing concurrent first logins in this
        process. Across processes the email unique constraint decides.
    :param extractors: Provider tag to extraction function table.
    """

    def __init__(
        self,
        *,
        accounts: AccountDirectory,
        locks: KeyedLock | None = None,
        extractors: Mapping[
            AuthProvider, Callable[[Mapping[str, Any]], ExternalIdentity]
        ] = EXTRACTORS,
    ) -> None:
        self.accounts = accounts
        self.locks = locks or KeyedLock()
        self.extractors = extractors

    def resolve(self, provider_tag: str, attrs: Mapping[str, Any]) -> ExternalIdentity:
        """
        Extract a normalized identity from a provider payload.

        :param provider_tag: Provider name, matched case-insensitively.
        :param attrs: Raw user-info attributes from the provider.
        :raises UnsupportedProviderError: Unknown tag, or ``LOCAL``.
        :raises MissingEmailError: The payload has no usable email.
        :raises IncompleteIdentityError: The payload has no user id.
        """
        provider = AuthProvider.parse(provider_tag)
        extractor = self.extractors.get(provider) if provider is not None else None
        if extractor is None:
            raise UnsupportedProviderError(str(provider_tag))
        if not isinstance(attrs, Mapping):
            raise IncompleteIdentityError(f"{provider.value} payload must be an object.")
        return extractor(attrs)

    def reconcile(self, identity: ExternalIdentity) -> AccountRecord:
        """
        Return the account for ``identity``, creating it on first sight.

        1. Look the account up by email.
        2. Absent: create it (provider-verified email, role ``USER``, active).
        3. Bound to another provider: raise :class:`ProviderConflictError`.
        4. Same provider: refresh the display name and avatar only.

        :raises ProviderConflictError: See step 3, or the provider id is
            already linked to an account with another email.
        """
        with self.locks.hold(identity.email):
            account = self.accounts.find_by_email(identity.email)
            if account is None:
                try:
                    return self._create(identity)
                except EmailTakenError:
                    # Another process created it first.
                    account = self.accounts.find_by_email(identity.email)
                    if account is None:
                        raise
            return self._merge(account, identity)

    # ------------------------------------------------------------------ #
    # Steps
    # ------------------------------------------------------------------ #

    def _create(self, identity: ExternalIdentity) -> AccountRecord:
        linked = self.accounts.find_by_provider_and_external_id(
            identity.provider, identity.external_id
        )
        if linked is not None:
            self._conflict(
                linked.provider,
                identity,
                f"this {identity.provider.value} identity is linked to another email",
            )

        seed = username_seed(identity.name, identity.email)
        for candidate in username_candidates(seed):
            if self.accounts.exists_by_username(candidate):
                continue
            record = AccountRecord(
                email=identity.email,
                username=candidate,
                provider=identity.provider,
                provider_id=identity.external_id,
                profile_image=identity.avatar_url,
                role=Role.USER,
                active=True,
                email_verified=True,
            )
            try:
                saved = self.accounts.save(record)
            except UsernameTakenError:
                continue
            log.info(
                "identity.account.created",
                extra={
                    "event": "identity.account.created",
                    "account_id": saved.id,
                    "provider": identity.provider.value,
                },
            )
            return saved
        raise UsernameTakenError(seed)

    def _merge(self, account: AccountRecord, identity: ExternalIdentity) -> AccountRecord:
        if account.provider is not identity.provider:
            self._conflict(account.provider, identity)

        changed = False
        if identity.name:
            name = username_seed(identity.name, identity.email)
            if name != account.username and not self.accounts.exists_by_username(name):
                account.username = name
                changed = True
        if identity.avatar_url and identity.avatar_url != account.profile_image:
            account.profile_image = identity.avatar_url
            changed = True
        if not changed:
            return account

        try:
            return self.accounts.save(account)
        except UsernameTakenError:
            current = self.accounts.find_by_id(account.id)  # type: ignore[arg-type]
            if current is None:
                raise
            current.profile_image = account.profile_image
            return self.accounts.save(current)

    def _conflict(
        self, existing: AuthProvider, identity: ExternalIdentity, detail: str | None = None
    ) -> NoReturn:
        log.warning(
            "identity.provider_conflict",
            extra={
                "event": "identity.provider_conflict",
                "provider": identity.provider.value,
            },
        )
        raise ProviderConflictError(
            existing=existing.value, requested=identity.provider.value, detail=detail
        )
