"""Service layer public API.

This package exposes the essential building blocks for the service layer so that
callers can import from :mod:`mystorage_auth.services` without knowing internal
structure.

Re-exports
----------
- Base primitives (from ``mystorage_auth.services._shared.base``)
    * :class:`BaseService`
    * :class:`ServiceContext`

- Shared results (from ``mystorage_auth.services._shared``)
    * :class:`Outcome`
    * :class:`AuthFailure`, :class:`ErrorKind`

- Auth service (from ``mystorage_auth.services.auth``)
    * :class:`AuthService`
    * DTOs: :class:`RegisterIn`, :class:`LoginIn`, :class:`RefreshIn`,
      :class:`ResetPasswordIn`, :class:`ChangePasswordIn`, :class:`LogoutIn`,
      :class:`TokenPairOut`, :class:`RegisteredOut`, :class:`AccountOut`
"""

from __future__ import annotations

# Base primitives (service base + request-scoped context)
from ._shared.base import BaseService, ServiceContext

# Shared result types
from ._shared.dto import Outcome
from ._shared.errors import AuthFailure, ErrorKind
from .auth.dto import (
    AccountOut,
    ChangePasswordIn,
    LoginIn,
    LogoutIn,
    RefreshIn,
    RegisteredOut,
    RegisterIn,
    ResetPasswordIn,
    TokenPairOut,
)

# Auth service
from .auth.service import AuthService

__all__ = [
    # Base
    "BaseService",
    "ServiceContext",
    # Results
    "Outcome",
    "AuthFailure",
    "ErrorKind",
    # Auth
    "AuthService",
    "RegisterIn",
    "LoginIn",
    "RefreshIn",
    "ResetPasswordIn",
    "ChangePasswordIn",
    "LogoutIn",
    "TokenPairOut",
    "RegisteredOut",
    "AccountOut",
]
