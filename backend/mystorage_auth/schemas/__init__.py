"""Convenience exports for application schemas."""

from __future__ import annotations

from .auth import (
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

__all__ = [
    "AccountSchema",
    "ChangePasswordSchema",
    "ConfirmEmailQuerySchema",
    "EmailOnlySchema",
    "LoginSchema",
    "LogoutSchema",
    "RefreshTokenSchema",
    "RegisteredSchema",
    "RegisterSchema",
    "ResetPasswordSchema",
    "TokenPairSchema",
]
