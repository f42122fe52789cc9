"""End-to-end HTTP flows through the Flask test client."""

from __future__ import annotations

import pytest

from tests.factories.account import DEFAULT_PASSWORD, AccountFactory

BASE = "/api/v1"
PASSWORD = "Str0ng!pass"


def _signup(client, email="new@example.com", username="newbie", password=PASSWORD):
    return client.post(
        f"{BASE}/auth/signup",
        json={"email": email, "password": password, "username": username},
    )


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class TestSignupAndLogin:
    def test_signup_returns_token_pair(self, client):
        resp = _signup(client)
        assert resp.status_code == 201
        data = resp.get_json()["data"]
        assert data["token_type"] == "Bearer"
        assert data["access_token"] and data["refresh_token"]
        assert data["expires_in"] > 0
        assert resp.headers["Cache-Control"] == "no-store"

    def test_signup_duplicate_email_conflicts(self, client, session):
        AccountFactory(email="taken@example.com")
        session.commit()
        resp = _signup(client, email="TAKEN@example.com")
        assert resp.status_code == 409
        assert resp.get_json()["code"] == "email_taken"

    def test_signup_validation_is_problem_json(self, client):
        resp = _signup(client, email="not-an-email", password="weak", username="x")
        assert resp.status_code == 422
        assert resp.mimetype == "application/problem+json"
        errors = resp.get_json()["details"]["errors"]
        assert {"email", "password", "username"} <= set(errors)

    def test_login(self, client, session):
        AccountFactory(email="login@example.com")
        session.commit()
        resp = client.post(
            f"{BASE}/auth/login",
            json={"email": "Login@Example.com", "password": DEFAULT_PASSWORD},
        )
        assert resp.status_code == 200
        assert resp.get_json()["data"]["access_token"]

    @pytest.mark.parametrize(
        ("email", "password"),
        [("login2@example.com", "Wr0ng!pass"), ("ghost@example.com", DEFAULT_PASSWORD)],
    )
    def test_login_failures_look_identical(self, client, session, email, password):
        AccountFactory(email="login2@example.com")
        session.commit()
        resp = client.post(f"{BASE}/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 401
        body = resp.get_json()
        assert body["detail"] == "Invalid email or password."
        assert body["code"] == "invalid_credentials"


class TestTokens:
    def test_refresh_rotates_and_replay_is_rejected(self, client):
        first = _signup(client).get_json()["data"]

        rotated = client.post(
            f"{BASE}/auth/refresh", json={"refresh_token": first["refresh_token"]}
        )
        assert rotated.status_code == 200
        second = rotated.get_json()["data"]
        assert second["refresh_token"] != first["refresh_token"]

        replay = client.post(f"{BASE}/auth/refresh", json={"refresh_token": first["refresh_token"]})
        assert replay.status_code == 401
        assert replay.get_json()["detail"] == "Invalid or expired token."

    def test_access_token_cannot_refresh(self, client):
        pair = _signup(client).get_json()["data"]
        resp = client.post(f"{BASE}/auth/refresh", json={"refresh_token": pair["access_token"]})
        assert resp.status_code == 401

    def test_refresh_requires_token_field(self, client):
        resp = client.post(f"{BASE}/auth/refresh", json={})
        assert resp.status_code == 422

    def test_logout_with_refresh_token(self, client):
        pair = _signup(client).get_json()["data"]
        resp = client.post(f"{BASE}/auth/logout", json={"refresh_token": pair["refresh_token"]})
        assert resp.status_code == 204

        after = client.post(f"{BASE}/auth/refresh", json={"refresh_token": pair["refresh_token"]})
        assert after.status_code == 401

    def test_logout_with_bearer(self, client):
        pair = _signup(client).get_json()["data"]
        resp = client.post(f"{BASE}/auth/logout", headers=_bearer(pair["access_token"]))
        assert resp.status_code == 204

        again = client.post(f"{BASE}/auth/logout", headers=_bearer(pair["access_token"]))
        assert again.status_code == 204

        after = client.post(f"{BASE}/auth/refresh", json={"refresh_token": pair["refresh_token"]})
        assert after.status_code == 401

    def test_logout_without_credentials(self, client):
        resp = client.post(f"{BASE}/auth/logout")
        assert resp.status_code == 401
        assert resp.get_json()["code"] == "missing_token"


class TestUsers:
    def test_me_requires_bearer(self, client):
        resp = client.get(f"{BASE}/users/me")
        assert resp.status_code == 401
        assert resp.get_json()["code"] == "missing_token"

    def test_me_rejects_garbage_token(self, client):
        resp = client.get(f"{BASE}/users/me", headers=_bearer("not.a.jwt"))
        assert resp.status_code == 401

    def test_me_rejects_refresh_token(self, client):
        pair = _signup(client).get_json()["data"]
        resp = client.get(f"{BASE}/users/me", headers=_bearer(pair["refresh_token"]))
        assert resp.status_code == 401

    def test_me(self, client):
        pair = _signup(client, email="me@example.com", username="itsme").get_json()["data"]
        resp = client.get(f"{BASE}/users/me", headers=_bearer(pair["access_token"]))
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["email"] == "me@example.com"
        assert data["username"] == "itsme"
        assert data["provider"] == "LOCAL"
        assert data["role"] == "USER"
        assert "password" not in data and "password_hash" not in data

    def test_change_password(self, client):
        pair = _signup(client, email="pw@example.com", username="pwuser").get_json()["data"]
        resp = client.post(
            f"{BASE}/users/me/password",
            headers=_bearer(pair["access_token"]),
            json={"current_password": PASSWORD, "new_password": "N3w!password"},
        )
        assert resp.status_code == 204

        old = client.post(
            f"{BASE}/auth/login", json={"email": "pw@example.com", "password": PASSWORD}
        )
        new = client.post(
            f"{BASE}/auth/login", json={"email": "pw@example.com", "password": "N3w!password"}
        )
        assert old.status_code == 401
        assert new.status_code == 200

    def test_change_password_wrong_current(self, client):
        pair = _signup(client).get_json()["data"]
        resp = client.post(
            f"{BASE}/users/me/password",
            headers=_bearer(pair["access_token"]),
            json={"current_password": "Wr0ng!pass", "new_password": "N3w!password"},
        )
        assert resp.status_code == 401

    def test_change_password_must_differ(self, client):
        pair = _signup(client).get_json()["data"]
        resp = client.post(
            f"{BASE}/users/me/password",
            headers=_bearer(pair["access_token"]),
            json={"current_password": PASSWORD, "new_password": PASSWORD},
        )
        assert resp.status_code == 422

    def test_update_profile(self, client):
        pair = _signup(client).get_json()["data"]
        resp = client.put(
            f"{BASE}/users/me/profile",
            headers=_bearer(pair["access_token"]),
            json={"username": "renamed", "profile_image": "https://img.example.com/a.png"},
        )
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["username"] == "renamed"
        assert data["profile_image"] == "https://img.example.com/a.png"

    def test_update_profile_username_taken(self, client, session):
        AccountFactory(username="occupied")
        session.commit()
        pair = _signup(client).get_json()["data"]
        resp = client.put(
            f"{BASE}/users/me/profile",
            headers=_bearer(pair["access_token"]),
            json={"username": "occupied"},
        )
        assert resp.status_code == 409
        assert resp.get_json()["code"] == "username_taken"

    def test_update_profile_needs_a_field(self, client):
        pair = _signup(client).get_json()["data"]
        resp = client.put(
            f"{BASE}/users/me/profile", headers=_bearer(pair["access_token"]), json={}
        )
        assert resp.status_code == 422


class TestProviderLogin:
    GITHUB_ATTRS = {
        "id": 583231,
        "login": "octocat",
        "email": "octocat@github.com",
        "avatar_url": "https://avatars.example.com/u/583231",
    }

    def test_status(self, client):
        resp = client.get(f"{BASE}/auth/oauth2/status")
        assert resp.status_code == 200
        assert resp.get_json() == {"status": "ok", "providers": ["github", "google", "kakao"]}

    def test_github_creates_then_reuses_account(self, client):
        first = client.post(f"{BASE}/auth/oauth2/github", json=self.GITHUB_ATTRS)
        assert first.status_code == 200
        token = first.get_json()["data"]["access_token"]

        me = client.get(f"{BASE}/users/me", headers=_bearer(token)).get_json()["data"]
        assert me["provider"] == "GITHUB"
        assert me["email"] == "octocat@github.com"
        assert me["email_verified"] is True

        again = client.post(f"{BASE}/auth/oauth2/GitHub", json=self.GITHUB_ATTRS)
        token2 = again.get_json()["data"]["access_token"]
        me2 = client.get(f"{BASE}/users/me", headers=_bearer(token2)).get_json()["data"]
        assert me2["id"] == me["id"]

    def test_email_owned_by_local_account_conflicts(self, client, session):
        AccountFactory(email="octocat@github.com")
        session.commit()
        resp = client.post(f"{BASE}/auth/oauth2/github", json=self.GITHUB_ATTRS)
        assert resp.status_code == 409
        assert resp.get_json()["code"] == "provider_conflict"

    def test_unsupported_provider(self, client):
        resp = client.post(f"{BASE}/auth/oauth2/myspace", json=self.GITHUB_ATTRS)
        assert resp.status_code == 400
        assert resp.get_json()["code"] == "unsupported_provider"

    def test_missing_email(self, client):
        attrs = {k: v for k, v in self.GITHUB_ATTRS.items() if k != "email"}
        resp = client.post(f"{BASE}/auth/oauth2/github", json=attrs)
        assert resp.status_code == 400
        assert resp.get_json()["code"] == "missing_email"

    def test_empty_body(self, client):
        resp = client.post(f"{BASE}/auth/oauth2/github", json={})
        assert resp.status_code == 400


class TestHealth:
    def test_health(self, client):
        resp = client.get(f"{BASE}/health")
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "ok"
        assert resp.get_json()["db"] == "ok"
