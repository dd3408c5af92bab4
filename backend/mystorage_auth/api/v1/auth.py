"""Authentication endpoints using the service layer."""

from __future__ import annotations

from flask import Blueprint, request

from mystorage_auth.api.deps import (
    bearer_token,
    current_account_id,
    get_auth_service,
    json_response,
    link_base_url,
    require_auth,
    timing,
    unwrap,
)
from mystorage_auth.core.errors import APIError
from mystorage_auth.schemas import (
    AccountSchema,
    ChangePasswordSchema,
    ConfirmEmailQuerySchema,
    EmailOnlySchema,
    LoginSchema,
    LogoutSchema,
    RefreshTokenSchema,
    RegisteredSchema,
    RegisterSchema,
    ResetPasswordSchema,
    TokenPairSchema,
)
from mystorage_auth.services.auth.dto import (
    ChangePasswordIn,
    LoginIn,
    LogoutIn,
    RefreshIn,
    RegisterIn,
    ResetPasswordIn,
)

bp = Blueprint("auth", __name__, url_prefix="/auth")

register_schema = RegisterSchema()
confirm_query_schema = ConfirmEmailQuerySchema()
email_only_schema = EmailOnlySchema()
reset_schema = ResetPasswordSchema()
login_schema = LoginSchema()
refresh_schema = RefreshTokenSchema()
change_password_schema = ChangePasswordSchema()
logout_schema = LogoutSchema()
token_schema = TokenPairSchema()
registered_schema = RegisteredSchema()
account_schema = AccountSchema()

# Same body whether or not the address belongs to an account.
RESET_REQUESTED_MESSAGE = (
    "If an account exists for that email, a password reset link has been sent."
)


def _json_body() -> dict:
    return request.get_json(silent=True) or {}


@bp.post("/register")
@timing
def register():
    """Create a pending account and send its confirmation email."""

    data = register_schema.load(_json_body())
    registered = unwrap(get_auth_service().register(RegisterIn(**data), base_url=link_base_url()))
    return json_response({"data": registered_schema.dump(registered)}, status=201)


@bp.get("/confirm-email")
@timing
def confirm_email():
    """Consume the token from a confirmation link."""

    query = confirm_query_schema.load(request.args)
    if not get_auth_service().confirm_email(query["account_id"], query["token"]):
        raise APIError(
            "Invalid or expired confirmation link.",
            status_code=400,
            code="invalid_confirmation",
        )
    return json_response({"message": "Email confirmed."})


@bp.post("/resend-confirmation")
@timing
def resend_confirmation():
    data = email_only_schema.load(_json_body())
    unwrap(get_auth_service().resend_confirmation(data["email"], base_url=link_base_url()))
    return json_response({"message": "Confirmation email sent."})


@bp.post("/forgot-password")
@timing
def forgot_password():
    """Start password recovery; the response never reveals whether the email exists."""

    data = email_only_schema.load(_json_body())
    unwrap(get_auth_service().request_password_reset(data["email"], base_url=link_base_url()))
    return json_response({"message": RESET_REQUESTED_MESSAGE})


@bp.post("/reset-password")
@timing
def reset_password():
    data = reset_schema.load(_json_body())
    unwrap(get_auth_service().reset_password(ResetPasswordIn(**data)))
    return json_response({"message": "Password has been reset. Please log in again."})


@bp.post("/login")
@timing
def login():
    """Authenticate credentials and issue an access/refresh token pair."""

    data = login_schema.load(_json_body())
    pair = unwrap(get_auth_service().login(LoginIn(**data)))
    return json_response({"data": token_schema.dump(pair)})


@bp.post("/refresh-token")
@timing
def refresh_token():
    """Rotate a refresh token: the presented one is spent, a new pair is returned."""

    data = refresh_schema.load(_json_body())
    pair = unwrap(get_auth_service().refresh_session(RefreshIn(**data)))
    return json_response({"data": token_schema.dump(pair)})


@bp.post("/change-password")
@require_auth
@timing
def change_password():
    data = change_password_schema.load(_json_body())
    unwrap(
        get_auth_service().change_password(
            ChangePasswordIn(account_id=current_account_id(), **data)
        )
    )
    return json_response({"message": "Password changed. Please log in again."})


@bp.post("/logout")
@timing
def logout():
    """Revoke the given refresh token, or every session with ``all_sessions``.

    The access token may already be expired; it only identifies the account.
    """

    data = logout_schema.load(_json_body())
    unwrap(get_auth_service().logout(LogoutIn(access_token=bearer_token(), **data)))
    return json_response({"message": "Logged out."})


@bp.get("/me")
@require_auth
@timing
def me():
    """Return the authenticated account."""

    account = unwrap(get_auth_service().get_account(current_account_id()))
    return json_response({"data": account_schema.dump(account)})
