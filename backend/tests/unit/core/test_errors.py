"""Tests for mapping service errors onto problem+json responses."""

from __future__ import annotations

import pytest
from authgate.core.errors import APIError, _error_code, translate_service_error
from authgate.services._shared.errors import (
    AccountNotFoundError,
    EmailTakenError,
    InvalidCredentialsError,
    MissingEmailError,
    ProviderConflictError,
    RevokedOrUnknownTokenError,
    TokenExpiredError,
    UnavailableError,
    UnsupportedProviderError,
)


@pytest.mark.parametrize(
    ("exc", "code"),
    [
        (EmailTakenError("a@example.com"), "email_taken"),
        (RevokedOrUnknownTokenError(), "revoked_or_unknown_token"),
        (TokenExpiredError(), "token_expired"),
        (UnavailableError(), "unavailable"),
    ],
)
def test_error_code_is_snake_case_class_name(exc, code):
    assert _error_code(exc) == code


@pytest.mark.parametrize(
    ("exc", "status"),
    [
        (InvalidCredentialsError(), 401),
        (TokenExpiredError(), 401),
        (RevokedOrUnknownTokenError(), 401),
        (AccountNotFoundError(3), 404),
        (EmailTakenError("a@example.com"), 409),
        (ProviderConflictError(existing="LOCAL", requested="GITHUB"), 409),
        (UnsupportedProviderError("myspace"), 400),
        (MissingEmailError("GITHUB"), 400),
        (UnavailableError("redis down"), 503),
    ],
)
def test_translate_status(exc, status):
    assert translate_service_error(exc).status_code == status


def test_token_failures_share_one_message():
    a = translate_service_error(TokenExpiredError())
    b = translate_service_error(RevokedOrUnknownTokenError())
    assert a.message == b.message == "Invalid or expired token."
    assert a.code != b.code


def test_unavailable_hides_backend_detail():
    err = translate_service_error(UnavailableError("redis at 10.0.0.1 refused"))
    assert "10.0.0.1" not in err.message


def test_problem_body(app):
    with app.test_request_context("/api/v1/auth/login"):
        problem = APIError("Nope", status_code=409, code="conflict").to_problem()
    assert problem["status"] == 409
    assert problem["title"] == "Conflict"
    assert problem["detail"] == "Nope"
    assert problem["instance"] == "/api/v1/auth/login"
    assert problem["code"] == "conflict"
    assert problem["request_id"]


def test_unknown_route_is_problem_json(client):
    resp = client.get("/api/v1/nowhere")
    assert resp.status_code == 404
    assert resp.mimetype == "application/problem+json"
    assert resp.get_json()["detail"] == "Route '/api/v1/nowhere' not found"
