"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from marshmallow import Schema, fields, validate

# Upper bound only; strength rules live in the service-layer password policy.
_PASSWORD = validate.Length(min=1, max=128)


class RegisterSchema(Schema):
    """Input payload for account registration."""

    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=_PASSWORD)
    display_name = fields.String(load_default=None, validate=validate.Length(max=100))


class ConfirmEmailQuerySchema(Schema):
    """Query string of the confirmation link."""

    account_id = fields.Integer(required=True, data_key="userId")
    token = fields.String(required=True, validate=validate.Length(min=1, max=512))


class EmailOnlySchema(Schema):
    """Payload of resend-confirmation and forgot-password."""

    email = fields.Email(required=True, validate=validate.Length(max=254))


class ResetPasswordSchema(Schema):
    account_id = fields.Integer(required=True, data_key="userId")
    token = fields.String(required=True, validate=validate.Length(min=1, max=512))
    new_password = fields.String(required=True, validate=_PASSWORD)


class LoginSchema(Schema):
    """Input payload for authenticating an account."""

    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=_PASSWORD)


class RefreshTokenSchema(Schema):
    """Expired access token plus the refresh secret issued with it."""

    access_token = fields.String(required=True, validate=validate.Length(min=1))
    refresh_token = fields.String(required=True, validate=validate.Length(min=1, max=512))


class ChangePasswordSchema(Schema):
    current_password = fields.String(required=True, validate=_PASSWORD)
    new_password = fields.String(required=True, validate=_PASSWORD)
    confirm_password = fields.String(required=True, validate=_PASSWORD)


class LogoutSchema(Schema):
    """Logout payload; the access token travels in the Authorization header."""

    refresh_token = fields.String(load_default=None, validate=validate.Length(max=512))
    all_sessions = fields.Boolean(load_default=False)


class TokenPairSchema(Schema):
    """Response payload containing a session token pair."""

    access_token = fields.String(required=True)
    access_expires_at = fields.DateTime(required=True)
    refresh_token = fields.String(required=True)
    refresh_expires_at = fields.DateTime(required=True)
    token_type = fields.Constant("bearer", dump_only=True)


class RegisteredSchema(Schema):
    account_id = fields.Integer(required=True)
    email = fields.Email(required=True)


class AccountSchema(Schema):
    """Response payload exposing the authenticated account."""

    id = fields.Integer(required=True)
    email = fields.Email(required=True)
    display_name = fields.String(allow_none=True)
    email_confirmed = fields.Boolean(required=True)
    created_at = fields.DateTime(required=True)
