"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from typing import Any

from marshmallow import Schema, ValidationError, fields, validate, validates_schema

# At least one lower, upper, digit and symbol; 8+ characters from the allowed set.
PASSWORD_PATTERN = r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[!@#$%^&*()_+])[A-Za-z\d!@#$%^&*()_+]{8,128}$"
USERNAME_PATTERN = r"^[\w-]{3,20}$"

strong_password = validate.Regexp(
    PASSWORD_PATTERN,
    error="Password needs 8+ characters with upper and lower case letters, a digit and a symbol.",
)
username_rule = validate.Regexp(
    USERNAME_PATTERN,
    error="Username must be 3-20 letters, digits, '_' or '-'.",
)


class SignupSchema(Schema):
    """Input payload for local account signup."""

    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, load_only=True, validate=strong_password)
    username = fields.String(required=True, validate=username_rule)


class LoginSchema(Schema):
    """Input payload for password login."""

    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(
        required=True, load_only=True, validate=validate.Length(min=1, max=128)
    )


class RefreshSchema(Schema):
    """Input payload for refresh token rotation."""

    refresh_token = fields.String(required=True, validate=validate.Length(min=1))


class LogoutSchema(Schema):
    """Optional refresh token; without it the bearer's account is signed out."""

    refresh_token = fields.String(load_default=None, validate=validate.Length(min=1))


class PasswordChangeSchema(Schema):
    """Input payload for a password change."""

    current_password = fields.String(
        required=True, load_only=True, validate=validate.Length(min=1, max=128)
    )
    new_password = fields.String(required=True, load_only=True, validate=strong_password)

    @validates_schema
    def check_differs(self, data: dict[str, Any], **_: Any) -> None:
        if data.get("current_password") == data.get("new_password"):
            raise ValidationError(
                "New password must differ from the current one.", field_name="new_password"
            )


class ProfileUpdateSchema(Schema):
    """Partial profile edit; at least one field is required."""

    username = fields.String(load_default=None, validate=username_rule)
    profile_image = fields.Url(load_default=None, validate=validate.Length(max=512))

    @validates_schema
    def check_not_empty(self, data: dict[str, Any], **_: Any) -> None:
        if data.get("username") is None and data.get("profile_image") is None:
            raise ValidationError("Provide username and/or profile_image.")


class TokenResponseSchema(Schema):
    """Response payload with a token pair."""

    token_type = fields.String(required=True)
    access_token = fields.String(required=True)
    refresh_token = fields.String(required=True)
    expires_in = fields.Integer(required=True)


class AccountSchema(Schema):
    """Public account representation."""

    id = fields.Integer(required=True)
    email = fields.Email(required=True)
    username = fields.String(required=True)
    profile_image = fields.String(allow_none=True)
    role = fields.String(required=True)
    provider = fields.String(required=True)
    email_verified = fields.Boolean(required=True)
    created_at = fields.DateTime(allow_none=True)
