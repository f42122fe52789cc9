"""Unit tests for the in-memory ports, the keyed lock and the naming policies."""

from __future__ import annotations

import threading
from datetime import timedelta

import pytest
from authgate.services._shared.dto import AccountRecord
from authgate.services._shared.enums import AuthProvider
from authgate.services._shared.errors import (
    AccountNotFoundError,
    EmailTakenError,
    ProviderConflictError,
    UsernameTakenError,
)
from authgate.services._shared.locks import KeyedLock
from authgate.services._shared.policies.common import (
    normalize_email,
    username_candidates,
    username_seed,
)
from authgate.services._shared.ports import InMemoryRefreshTokenStore

from tests.helpers.store_contract import LATER, NOW, RefreshStoreContract


class TestInMemoryRefreshTokenStore(RefreshStoreContract):
    @pytest.fixture()
    def store(self):
        return InMemoryRefreshTokenStore()

    @pytest.fixture()
    def account_id(self):
        return 1

    def test_concurrent_swaps_have_one_winner(self, store, account_id):
        store.put(account_id=account_id, token="seed", expires_at=LATER, created_at=NOW)
        barrier = threading.Barrier(10)
        results: list[bool] = []

        def attempt(n: int):
            barrier.wait()
            results.append(
                store.swap(
                    account_id=account_id,
                    expected="seed",
                    token=f"next-{n}",
                    expires_at=LATER,
                    created_at=NOW,
                )
            )

        threads = [threading.Thread(target=attempt, args=(n,)) for n in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1
        winner = store.find_by_account(account_id)
        assert sum(winner.matches(f"next-{n}") for n in range(10)) == 1


class TestInMemoryAccountDirectory:
    def test_save_assigns_id_and_timestamps(self, accounts, clock):
        saved = accounts.save(AccountRecord(email="A@Example.com", username="a"))

        assert saved.id == 1
        assert saved.email == "a@example.com"
        assert saved.created_at == saved.updated_at == clock.now()

    def test_returned_records_are_copies(self, accounts):
        saved = accounts.save(AccountRecord(email="a@example.com", username="a"))
        saved.username = "mutated"

        assert accounts.find_by_id(saved.id).username == "a"

    def test_update_touches_updated_at_only(self, accounts, clock):
        saved = accounts.save(AccountRecord(email="a@example.com", username="a"))
        clock.advance(timedelta(minutes=5))
        saved.username = "b"

        updated = accounts.save(saved)

        assert updated.username == "b"
        assert updated.created_at == saved.created_at
        assert updated.updated_at == clock.now()

    def test_uniqueness_rules(self, accounts):
        accounts.save(
            AccountRecord(
                email="gh@example.com",
                username="gh",
                provider=AuthProvider.GITHUB,
                provider_id="42",
            )
        )

        with pytest.raises(EmailTakenError):
            accounts.save(AccountRecord(email="GH@example.com", username="other"))
        with pytest.raises(UsernameTakenError):
            accounts.save(AccountRecord(email="new@example.com", username="gh"))
        with pytest.raises(ProviderConflictError):
            accounts.save(
                AccountRecord(
                    email="new@example.com",
                    username="new",
                    provider=AuthProvider.GITHUB,
                    provider_id="42",
                )
            )

    def test_lookup_by_provider(self, accounts):
        saved = accounts.save(
            AccountRecord(
                email="g@example.com", username="g", provider=AuthProvider.GOOGLE, provider_id="s1"
            )
        )

        assert accounts.find_by_provider_and_external_id(AuthProvider.GOOGLE, "s1").id == saved.id
        assert accounts.find_by_provider_and_external_id(AuthProvider.GITHUB, "s1") is None

    def test_update_unknown_id(self, accounts):
        with pytest.raises(AccountNotFoundError):
            accounts.save(AccountRecord(email="x@example.com", username="x", id=99))


class TestAccountRecord:
    def test_external_provider_requires_provider_id(self):
        with pytest.raises(ValueError):
            AccountRecord(email="x@example.com", username="x", provider=AuthProvider.KAKAO)

    def test_local_provider_rejects_provider_id(self):
        with pytest.raises(ValueError):
            AccountRecord(email="x@example.com", username="x", provider_id="1")


class TestKeyedLock:
    def test_same_key_is_serialized(self):
        locks = KeyedLock()
        inside = 0
        peak = 0
        guard = threading.Lock()

        def worker():
            nonlocal inside, peak
            with locks.hold("k"):
                with guard:
                    inside += 1
                    peak = max(peak, inside)
                threading.Event().wait(0.01)
                with guard:
                    inside -= 1

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert peak == 1
        assert locks._locks == {}

    def test_reentrant(self):
        locks = KeyedLock()
        with locks.hold("k"), locks.hold("k"):
            pass
        assert locks._locks == {}


class TestPolicies:
    def test_normalize_email(self):
        assert normalize_email("  Mixed@Case.IO ") == "mixed@case.io"
        with pytest.raises(ValueError):
            normalize_email("   ")

    def test_username_seed_truncates_and_falls_back(self):
        assert username_seed("  ", "someone@example.com") == "someone"
        assert len(username_seed("x" * 80, "a@b.c")) == 44

    def test_username_candidates(self):
        candidates = username_candidates("Jane Doe", attempts=3)

        assert list(candidates) == ["Jane Doe", "JaneDoe1", "JaneDoe2"]
