"""Endpoints acting on the authenticated account."""

from __future__ import annotations

from dataclasses import asdict

from flask import Blueprint

from authgate.api.deps import get_auth_service, json_body, json_response, require_auth, timing
from authgate.schemas import AccountSchema, PasswordChangeSchema, ProfileUpdateSchema
from authgate.services.auth import PasswordChangeIn, ProfileUpdateIn

bp = Blueprint("users", __name__)

account_schema = AccountSchema()
password_schema = PasswordChangeSchema()
profile_schema = ProfileUpdateSchema()


@bp.get("/me")
@require_auth
@timing
def me(account_id: int):
    """Return the caller's account."""

    account = get_auth_service().get_account(account_id)
    return json_response({"data": account_schema.dump(asdict(account))})


@bp.post("/me/password")
@require_auth
@timing
def change_password(account_id: int):
    """Replace the caller's password after checking the current one."""

    data = password_schema.load(json_body())
    get_auth_service().change_password(PasswordChangeIn(account_id=account_id, **data))
    return "", 204


@bp.put("/me/profile")
@require_auth
@timing
def update_profile(account_id: int):
    data = profile_schema.load(json_body())
    account = get_auth_service().update_profile(ProfileUpdateIn(account_id=account_id, **data))
    return json_response({"data": account_schema.dump(asdict(account))})
