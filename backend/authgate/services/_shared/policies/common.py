"""Small normalization rules shared by services and adapters."""

from __future__ import annotations

import re

_SUFFIX_SAFE = re.compile(r"[^\w-]+")


def normalize_email(email: str) -> str:
    """Return ``email`` trimmed and lowercased; the key accounts are unique on."""
    if not isinstance(email, str) or not email.strip():
        raise ValueError("Email is required.")
    return email.strip().lower()


def username_seed(display_name: str | None, email: str, *, max_length: int = 50) -> str:
    """
    Derive a username from a provider display name.

    Falls back to the local part of the email when the provider sent no name.
    Leaves room for a collision suffix within ``max_length``.
    """
    base = (display_name or "").strip() or email.split("@", 1)[0]
    return base[: max_length - 6] or "user"


def username_candidates(seed: str, *, attempts: int = 50):
    """Yield ``seed``, then ``seed1``, ``seed2`` ... for collision handling."""
    yield seed
    compact = _SUFFIX_SAFE.sub("", seed) or "user"
    for n in range(1, attempts):
        yield f"{compact}{n}"
