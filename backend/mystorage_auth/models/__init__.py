from mystorage_auth.models.account import Account, normalize_email
from mystorage_auth.models.account_log import AccountAction, AccountLog
from mystorage_auth.models.account_token import AccountToken, TokenPurpose
from mystorage_auth.models.refresh_token import RefreshToken

__all__ = [
    "Account",
    "AccountAction",
    "AccountLog",
    "AccountToken",
    "RefreshToken",
    "TokenPurpose",
    "normalize_email",
]
