"""Authentication endpoints using the service layer."""

from __future__ import annotations

from dataclasses import asdict

from flask import Blueprint

from authgate.api.deps import (
    bearer_token,
    get_auth_service,
    json_body,
    json_response,
    no_store,
    timing,
)
from authgate.core.errors import APIError, Unauthorized
from authgate.schemas import (
    LoginSchema,
    LogoutSchema,
    RefreshSchema,
    SignupSchema,
    TokenResponseSchema,
)
from authgate.services.auth import LoginIn, SignupIn
from authgate.services.identity.providers import supported_providers
from authgate.services.tokens import TokenPairOut

bp = Blueprint("auth", __name__)

signup_schema = SignupSchema()
login_schema = LoginSchema()
refresh_schema = RefreshSchema()
logout_schema = LogoutSchema()
token_schema = TokenResponseSchema()


def _tokens(pair: TokenPairOut, *, status: int = 200):
    return no_store(json_response({"data": token_schema.dump(asdict(pair))}, status=status))


@bp.post("/signup")
@timing
def signup():
    """Create a local account and return its first token pair."""

    data = signup_schema.load(json_body())
    pair = get_auth_service().signup(SignupIn(**data))
    return _tokens(pair, status=201)


@bp.post("/login")
@timing
def login():
    """Exchange email and password for a token pair."""

    data = login_schema.load(json_body())
    pair = get_auth_service().login(LoginIn(**data))
    return _tokens(pair)


@bp.post("/refresh")
@timing
def refresh():
    """Rotate a refresh token into a new pair."""

    data = refresh_schema.load(json_body())
    pair = get_auth_service().refresh(data["refresh_token"])
    return _tokens(pair)


@bp.post("/logout")
@timing
def logout():
    """Revoke a session by refresh token, or the bearer's session when none is given."""

    data = logout_schema.load(json_body())
    service = get_auth_service()
    if data["refresh_token"] is not None:
        service.logout(refresh_token=data["refresh_token"])
    else:
        access = bearer_token()
        if access is None:
            raise Unauthorized("Missing bearer token.", code="missing_token")
        service.logout(account_id=service.authenticate(access))
    return "", 204


@bp.post("/oauth2/<provider>")
@timing
def oauth2_login(provider: str):
    """Sign in with provider user-info attributes posted as the JSON body."""

    attrs = json_body()
    if not isinstance(attrs, dict) or not attrs:
        raise APIError("Provider attributes must be a non-empty JSON object.", code="bad_request")
    pair = get_auth_service().login_with_provider(provider, attrs)
    return _tokens(pair)


@bp.get("/oauth2/status")
@timing
def oauth2_status():
    """Report that provider sign-in is available and which providers are accepted."""

    return json_response({"status": "ok", "providers": supported_providers()})
