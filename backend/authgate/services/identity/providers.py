"""
Provider user-info payload mappings.

Each external provider maps to a pure function ``attrs -> ExternalIdentity``
registered in :data:`EXTRACTORS`. Supporting another provider means adding an
:class:`~authgate.services._shared.enums.AuthProvider` member and one function.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from authgate.services._shared.enums import AuthProvider
from authgate.services._shared.errors import IncompleteIdentityError, MissingEmailError
from authgate.services._shared.policies.common import normalize_email


@dataclass(frozen=True, slots=True)
class ExternalIdentity:
    """
    Normalized identity asserted by a provider; request-scoped, never persisted.

    :param provider: Provider tag.
    :type provider: AuthProvider
    :param external_id: Provider-assigned user id.
    :type external_id: str
    :param email: Normalized email.
    :type email: str
    :param name: Display name, when the provider sent one.
    :type name: str | None
    :param avatar_url: Profile image URL.
    :type avatar_url: str | None
    """

    provider: AuthProvider
    external_id: str
    email: str
    name: str | None = None
    avatar_url: str | None = None


def _dig(attrs: Mapping[str, Any], *path: str) -> Any:
    node: Any = attrs
    for key in path:
        if not isinstance(node, Mapping):
            return None
        node = node.get(key)
    return node


def _text(value: Any) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _build(
    provider: AuthProvider,
    *,
    external_id: Any,
    email: Any,
    name: Any,
    avatar_url: Any,
) -> ExternalIdentity:
    ext_id = _text(external_id)
    if ext_id is None:
        raise IncompleteIdentityError(f"{provider.value} did not provide a user id.")
    raw_email = _text(email)
    if raw_email is None or "@" not in raw_email:
        raise MissingEmailError(provider.value)
    return ExternalIdentity(
        provider=provider,
        external_id=ext_id,
        email=normalize_email(raw_email),
        name=_text(name),
        avatar_url=_text(avatar_url),
    )


def github(attrs: Mapping[str, Any]) -> ExternalIdentity:
    return _build(
        AuthProvider.GITHUB,
        external_id=attrs.get("id"),
        email=attrs.get("email"),
        name=_text(attrs.get("name")) or attrs.get("login"),
        avatar_url=attrs.get("avatar_url"),
    )


def google(attrs: Mapping[str, Any]) -> ExternalIdentity:
    return _build(
        AuthProvider.GOOGLE,
        external_id=attrs.get("sub"),
        email=attrs.get("email"),
        name=attrs.get("name"),
        avatar_url=attrs.get("picture"),
    )


def kakao(attrs: Mapping[str, Any]) -> ExternalIdentity:
    # Kakao nests the profile under both "properties" and "kakao_account".
    return _build(
        AuthProvider.KAKAO,
        external_id=attrs.get("id"),
        email=_dig(attrs, "kakao_account", "email"),
        name=_text(_dig(attrs, "properties", "nickname"))
        or _dig(attrs, "kakao_account", "profile", "nickname"),
        avatar_url=_text(_dig(attrs, "properties", "profile_image"))
        or _dig(attrs, "kakao_account", "profile", "profile_image_url"),
    )


EXTRACTORS: Mapping[AuthProvider, Callable[[Mapping[str, Any]], ExternalIdentity]] = (
    MappingProxyType(
        {
            AuthProvider.GITHUB: github,
            AuthProvider.GOOGLE: google,
            AuthProvider.KAKAO: kakao,
        }
    )
)


def supported_providers() -> list[str]:
    """Tags accepted by :meth:`IdentityResolver.resolve`, lowercase."""
    return sorted(p.value.lower() for p in EXTRACTORS)
