"""
authgate.services._shared.ports
===============================

*Ports* (hexagonal interfaces) the auth services depend on.

Modules
-------
- :mod:`account_directory`:
    :class:`~.AccountDirectory`: account lookups and saves.

- :mod:`refresh_token_store`:
    :class:`~.RefreshTokenStore` and :class:`~.RefreshTokenRecord`: the
    single-active-token-per-account registry with compare-and-swap rotation.

- :mod:`clock`:
    :class:`~.Clock`: injected time source; :class:`~.FixedClock` for tests.

Each port ships an in-memory implementation used by unit tests and the
``memory`` store backend. Database and Redis adapters live under
``authgate.infra``.
"""

from __future__ import annotations

from .account_directory import AccountDirectory, InMemoryAccountDirectory
from .clock import Clock, FixedClock, SystemClock
from .refresh_token_store import (
    InMemoryRefreshTokenStore,
    RefreshTokenRecord,
    RefreshTokenStore,
    digest_token,
)

__all__ = [
    "AccountDirectory",
    "InMemoryAccountDirectory",
    "Clock",
    "FixedClock",
    "SystemClock",
    "RefreshTokenStore",
    "RefreshTokenRecord",
    "InMemoryRefreshTokenStore",
    "digest_token",
]
