"""Unit tests for SqlAlchemyRefreshTokenStore against the transactional SQLite session."""

from __future__ import annotations

import pytest
from authgate.infra.sqlalchemy.refresh_token_store import SqlAlchemyRefreshTokenStore
from authgate.models.account import Account
from authgate.models.refresh_token import RefreshToken
from authgate.services._shared.errors import AccountNotFoundError
from sqlalchemy import select

from tests.factories.account import AccountFactory
from tests.helpers.store_contract import LATER, NOW, RefreshStoreContract


class TestSqlRefreshTokenStore(RefreshStoreContract):
    @pytest.fixture()
    def store(self, session):
        return SqlAlchemyRefreshTokenStore()

    @pytest.fixture()
    def account_id(self, session):
        return AccountFactory().id

    def test_one_row_per_account(self, store, account_id, session):
        store.put(account_id=account_id, token="a", expires_at=LATER, created_at=NOW)
        store.put(account_id=account_id, token="b", expires_at=LATER, created_at=NOW)

        rows = session.scalars(select(RefreshToken).where(RefreshToken.account_id == account_id))
        assert len(list(rows)) == 1

    def test_put_for_unknown_account(self, store):
        with pytest.raises(AccountNotFoundError):
            store.put(account_id=987654, token="a", expires_at=LATER, created_at=NOW)

    def test_times_come_back_as_utc(self, store, account_id):
        store.put(account_id=account_id, token="a", expires_at=LATER, created_at=NOW)

        record = store.find_by_account(account_id)

        assert record.expires_at.tzinfo is not None
        assert record.expires_at == LATER

    def test_account_delete_cascades(self, store, account_id, session):
        store.put(account_id=account_id, token="a", expires_at=LATER, created_at=NOW)
        account = session.get(Account, account_id)
        assert account.refresh_token is not None
        session.delete(account)
        session.flush()

        assert store.find_by_token("a") is None
