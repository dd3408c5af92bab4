# mystorage_auth/services/auth/service.py
from __future__ import annotations

import hmac
import logging
import secrets
from datetime import datetime, timedelta
from html import escape
from urllib.parse import urlencode

from sqlalchemy.exc import IntegrityError

from mystorage_auth.core.logger import mask_email
from mystorage_auth.core.settings import AuthSettings
from mystorage_auth.models.account import Account
from mystorage_auth.models.account_log import AccountAction
from mystorage_auth.models.account_token import AccountToken, TokenPurpose
from mystorage_auth.services._shared.base import BaseService, ServiceContext
from mystorage_auth.services._shared.dto import Outcome
from mystorage_auth.services._shared.errors import AuthFailure, violates
from mystorage_auth.services._shared.policies.password import PasswordPolicy
from mystorage_auth.services._shared.ports import EmailGateway, RefreshTokenLedger, TokenCodec
from mystorage_auth.services.auth.dto import (
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
from mystorage_auth.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork

log = logging.getLogger(__name__)

ACCOUNT_TOKEN_BYTES = 32

CONFIRM_SUBJECT = "Confirm your MyStorage account"
RESET_SUBJECT = "Reset your MyStorage password"

CONFIRMATION_SEND_FAILED = (
    "Your account was created but the confirmation email could not be sent. "
    "Please request a new confirmation email later."
)
RESEND_FAILED = "The confirmation email could not be sent. Please try again later."
INVALID_RESET_TOKEN = "Invalid or expired password reset token."
INVALID_REFRESH_TOKEN = "Invalid or expired refresh token."


def _confirmation_body(email: str, link: str) -> str:
    return (
        f"Hello {escape(email)},<br/><br/>"
        "Please confirm your email by clicking the link below:<br/>"
        f"<a href='{escape(link, quote=True)}'>Confirm Email</a>"
    )


def _reset_body(email: str, link: str) -> str:
    return (
        f"Hello {escape(email)},<br/><br/>"
        "We received a request to reset your password. "
        "Use the link below to choose a new one:<br/>"
        f"<a href='{escape(link, quote=True)}'>Reset Password</a><br/><br/>"
        "If you did not ask for this, you can ignore this email."
    )


class AuthService(BaseService):
    """
    Identity and session lifecycle service.

    Every public flow returns an :class:`Outcome`. Expected failures (bad
    credentials, stale tokens, policy violations) come back as typed
    :class:`AuthFailure` values; only unexpected faults raise.

    Collaborators
    -------------
    * :class:`TokenCodec` mints access JWTs and refresh secrets.
    * :class:`RefreshTokenLedger` keeps refresh secrets bounded and single-use.
    * :class:`EmailGateway` delivers confirmation and reset links.
    * Units of Work give transactional access to accounts, account tokens
      and the audit log.
    """

    def __init__(
        self,
        *,
        settings: AuthSettings,
        token_codec: TokenCodec,
        ledger: RefreshTokenLedger,
        email_gateway: EmailGateway,
        ctx: ServiceContext | None = None,
    ) -> None:
        """
        Initialize the service with its dependencies.

        :param settings: Immutable token/account configuration.
        :param token_codec: Issues and verifies credentials.
        :param ledger: Refresh-token ledger (must share the UoW session when SQL-backed).
        :param email_gateway: Outbound mail port.
        :param ctx: Optional request-scoped context.
        """
        super().__init__(ctx=ctx)
        self.settings = settings
        self.tokens = token_codec
        self.ledger = ledger
        self.mailer = email_gateway
        self.password_policy = PasswordPolicy(
            min_length=settings.password_min_length,
            require_digit=settings.password_require_digit,
            require_lower=settings.password_require_lower,
            require_upper=settings.password_require_upper,
            require_symbol=settings.password_require_symbol,
        )

    # ------------------------------------------------------------------ #
    # Registration & confirmation
    # ------------------------------------------------------------------ #

    def register(self, dto: RegisterIn, *, base_url: str | None = None) -> Outcome[RegisteredOut]:
        """
        Create a pending account and mail its confirmation link.

        :param dto: Registration input.
        :param base_url: Base of the confirmation link; defaults to settings.
        :returns: The new account id on success. ``VALIDATION`` for policy or
            uniqueness problems (nothing is mailed), ``DEPENDENCY`` when the
            account was created but the email could not be delivered.
        """
        violations = self.password_policy.violations(dto.password)
        if violations:
            return Outcome.failure(AuthFailure.validation(*violations))

        try:
            with self.rw_uow() as uow:
                if uow.accounts.exists_by_email(dto.email):
                    return Outcome.failure(AuthFailure.validation("Email is already registered."))
                account = uow.accounts.create_account(
                    dto.email, dto.password, display_name=dto.display_name
                )
                token = self._issue_account_token(
                    uow,
                    account.id,
                    TokenPurpose.EMAIL_CONFIRMATION,
                    self.settings.confirmation_token_lifetime,
                )
                registered = RegisteredOut(account_id=account.id, email=account.email)
        except IntegrityError as exc:
            if violates(exc, "uq_accounts_email"):
                return Outcome.failure(AuthFailure.validation("Email is already registered."))
            raise
        except ValueError as exc:
            return Outcome.failure(AuthFailure.validation(str(exc)))

        log.info(
            "account registered",
            extra={"flow": "register", "account_id": registered.account_id},
        )
        link = self._link(base_url, "confirm-email", registered.account_id, token)
        result = self.mailer.send(
            registered.email, CONFIRM_SUBJECT, _confirmation_body(registered.email, link)
        )
        if not result.success:
            # The account stays pending; the owner can ask for a new link.
            log.error(
                "confirmation email failed for %s: %s",
                mask_email(registered.email),
                "; ".join(result.errors),
                extra={"flow": "register", "account_id": registered.account_id},
            )
            return Outcome.failure(AuthFailure.dependency(CONFIRMATION_SEND_FAILED))
        return Outcome.success(registered)

    def confirm_email(self, account_id: int, token: str) -> bool:
        """
        Consume an email-confirmation token.

        :param account_id: Account named in the confirmation link.
        :param token: Token from the confirmation link.
        :returns: ``True`` when the account is now confirmed; ``False`` for an
            unknown account, an already-confirmed account, or a bad, expired
            or used token.
        """
        now = self.now_utc()
        with self.rw_uow() as uow:
            account = uow.accounts.get(account_id)
            if account is None or account.email_confirmed:
                log.info(
                    "email confirmation rejected",
                    extra={"flow": "confirm_email", "account_id": account_id},
                )
                return False
            row = uow.account_tokens.find_for(account.id, TokenPurpose.EMAIL_CONFIRMATION)
            if not self._token_matches(row, token, now):
                log.info(
                    "email confirmation rejected: bad or expired token",
                    extra={"flow": "confirm_email", "account_id": account_id},
                )
                return False
            uow.accounts.set_confirmed(account.id)
            uow.account_tokens.delete(row)
            uow.account_logs.record(account.id, AccountAction.EMAIL_CONFIRMED)
        log.info("email confirmed", extra={"flow": "confirm_email", "account_id": account_id})
        return True

    def resend_confirmation(self, email: str, *, base_url: str | None = None) -> Outcome[None]:
        """
        Replace the confirmation token of a pending account and mail it again.

        :param email: Account email.
        :param base_url: Base of the confirmation link; defaults to settings.
        :returns: ``VALIDATION`` if the account is unknown or already
            confirmed, ``DEPENDENCY`` if delivery failed.
        """
        with self.rw_uow() as uow:
            account = uow.accounts.get_by_email(email)
            if account is None:
                return Outcome.failure(
                    AuthFailure.validation("No account is registered with this email.")
                )
            if account.email_confirmed:
                return Outcome.failure(AuthFailure.validation("Email is already confirmed."))
            token = self._issue_account_token(
                uow,
                account.id,
                TokenPurpose.EMAIL_CONFIRMATION,
                self.settings.confirmation_token_lifetime,
            )
            account_id, address = account.id, account.email

        link = self._link(base_url, "confirm-email", account_id, token)
        result = self.mailer.send(address, CONFIRM_SUBJECT, _confirmation_body(address, link))
        if not result.success:
            log.error(
                "confirmation resend failed for %s: %s",
                mask_email(address),
                "; ".join(result.errors),
                extra={"flow": "resend_confirmation", "account_id": account_id},
            )
            return Outcome.failure(AuthFailure.dependency(RESEND_FAILED))
        return Outcome.success()

    # ------------------------------------------------------------------ #
    # Password recovery
    # ------------------------------------------------------------------ #

    def request_password_reset(self, email: str, *, base_url: str | None = None) -> Outcome[None]:
        """
        Start password recovery without revealing whether ``email`` exists.

        The outcome is always the same success value. Only an existing,
        active account gets a reset token and an email; delivery failures
        are logged and never surfaced.

        :param email: Address the caller claims to own.
        :param base_url: Base of the reset link; defaults to settings.
        :returns: ``Outcome.success()`` in every case.
        """
        # Generated and hashed up front so both branches do the same work.
        token = secrets.token_urlsafe(ACCOUNT_TOKEN_BYTES)
        token_hash = self.tokens.hash_secret(token)
        target: tuple[int, str] | None = None

        with self.rw_uow() as uow:
            account = uow.accounts.get_by_email(email)
            if account is not None and account.is_active:
                uow.account_tokens.replace(
                    account.id,
                    TokenPurpose.PASSWORD_RESET,
                    token_hash=token_hash,
                    expires_at=self.now_utc() + self.settings.reset_token_lifetime,
                )
                target = (account.id, account.email)

        if target is None:
            log.info(
                "password reset requested for unknown or inactive email %s",
                mask_email(email),
                extra={"flow": "request_password_reset", "reason": "unknown_account"},
            )
            return Outcome.success()

        account_id, address = target
        link = self._link(base_url, "reset-password", account_id, token)
        result = self.mailer.send(address, RESET_SUBJECT, _reset_body(address, link))
        if result.success:
            log.info(
                "password reset email sent",
                extra={"flow": "request_password_reset", "account_id": account_id},
            )
        else:
            log.error(
                "password reset email failed for %s: %s",
                mask_email(address),
                "; ".join(result.errors),
                extra={"flow": "request_password_reset", "account_id": account_id},
            )
        return Outcome.success()

    def reset_password(self, dto: ResetPasswordIn) -> Outcome[None]:
        """
        Set a new password using a mailed reset token.

        On success every refresh token of the account is revoked; the caller
        must log in again.

        :param dto: Account id, reset token and new password.
        :returns: ``VALIDATION`` with a single generic message for an unknown
            account or bad/expired token, or with policy messages.
        """
        now = self.now_utc()
        with self.rw_uow() as uow:
            account = uow.accounts.get(dto.account_id)
            row = (
                uow.account_tokens.find_for(account.id, TokenPurpose.PASSWORD_RESET)
                if account is not None
                else None
            )
            if account is None or not self._token_matches(row, dto.token, now):
                log.info(
                    "password reset rejected: bad or expired token",
                    extra={"flow": "reset_password", "account_id": dto.account_id},
                )
                return Outcome.failure(AuthFailure.validation(INVALID_RESET_TOKEN))

            violations = self.password_policy.violations(dto.new_password)
            if violations:
                return Outcome.failure(AuthFailure.validation(*violations))

            uow.accounts.update_password(account.id, dto.new_password)
            uow.account_tokens.delete(row)
            revoked = self.ledger.revoke_all(account.id)
            uow.account_logs.record(account.id, AccountAction.PASSWORD_RESET)

        log.info(
            "password reset completed; %d refresh token(s) revoked",
            revoked,
            extra={"flow": "reset_password", "account_id": dto.account_id},
        )
        return Outcome.success()

    # ------------------------------------------------------------------ #
    # Sessions
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> Outcome[TokenPairOut]:
        """
        Authenticate credentials and issue a fresh token pair.

        Unknown email, wrong password, unconfirmed and inactive accounts all
        yield the same ``CREDENTIAL`` failure; only the operator log says
        which one it was.

        :param dto: Login input.
        :returns: Access/refresh token pair on success.
        """
        with self.rw_uow() as uow:
            account = uow.accounts.get_by_email(dto.email)
            if account is None:
                Account.burn_password_check(dto.password)
                self._log_rejected_login(None, "unknown_account", dto.email)
                return Outcome.failure(AuthFailure.credential())

            reason = None
            if not uow.accounts.verify_password(account, dto.password):
                reason = "wrong_password"
            elif not account.email_confirmed:
                reason = "unconfirmed"
            elif not account.is_active:
                reason = "inactive"
            if reason is not None:
                uow.account_logs.record(account.id, AccountAction.FAILED_LOGIN)
                self._log_rejected_login(account.id, reason, dto.email)
                return Outcome.failure(AuthFailure.credential())

            pair = self._issue_pair(account)
            uow.account_logs.record(account.id, AccountAction.LOGIN)
            account_id = account.id

        log.info("login succeeded", extra={"flow": "login", "account_id": account_id})
        return Outcome.success(pair)

    def refresh_session(self, dto: RefreshIn) -> Outcome[TokenPairOut]:
        """
        Exchange a refresh secret for a new token pair (strict rotate-on-use).

        The access token only identifies the account, so its expiry is
        ignored; signature, issuer and audience are still verified.

        :param dto: Expired access token and the refresh secret.
        :returns: A new pair, or one identical ``TOKEN`` failure for every rejection.
        """
        claims = self.tokens.verify_access_token(dto.access_token, ignore_expiry=True)
        if claims is None:
            log.info("refresh rejected: invalid access token", extra={"flow": "refresh"})
            return Outcome.failure(AuthFailure.token(INVALID_REFRESH_TOKEN))

        now = self.now_utc()
        with self.rw_uow() as uow:
            account = uow.accounts.get(claims.subject_id)
            if account is None or not account.can_authenticate:
                log.warning(
                    "refresh rejected: account missing, unconfirmed or inactive",
                    extra={"flow": "refresh", "account_id": claims.subject_id},
                )
                return Outcome.failure(AuthFailure.token(INVALID_REFRESH_TOKEN))

            consumed = self.ledger.consume(
                account.id, self.tokens.hash_secret(dto.refresh_token), now
            )
            if consumed is None:
                log.warning(
                    "refresh rejected: unknown, expired, revoked or replayed refresh token",
                    extra={"flow": "refresh", "account_id": account.id},
                )
                return Outcome.failure(AuthFailure.token(INVALID_REFRESH_TOKEN))

            pair = self._issue_pair(account)

        log.info("session refreshed", extra={"flow": "refresh", "account_id": claims.subject_id})
        return Outcome.success(pair)

    def change_password(self, dto: ChangePasswordIn) -> Outcome[None]:
        """
        Change the password of an authenticated account.

        On success every refresh token of the account is revoked.

        :param dto: Account id plus current, new and confirmation passwords.
        :returns: ``STATE`` if the account cannot authenticate, ``VALIDATION``
            for mismatch/policy problems, ``CREDENTIAL`` if the current
            password is wrong.
        """
        with self.rw_uow() as uow:
            account = uow.accounts.get(dto.account_id)
            if account is None or not account.can_authenticate:
                return Outcome.failure(AuthFailure.state())

            if dto.new_password != dto.confirm_password:
                return Outcome.failure(
                    AuthFailure.validation("New password and confirmation do not match.")
                )
            violations = self.password_policy.violations(dto.new_password)
            if violations:
                return Outcome.failure(AuthFailure.validation(*violations))

            if not uow.accounts.verify_password(account, dto.current_password):
                log.info(
                    "password change rejected: wrong current password",
                    extra={"flow": "change_password", "account_id": account.id},
                )
                return Outcome.failure(AuthFailure.credential())

            uow.accounts.update_password(account.id, dto.new_password)
            revoked = self.ledger.revoke_all(account.id)
            uow.account_logs.record(account.id, AccountAction.PASSWORD_CHANGED)

        log.info(
            "password changed; %d refresh token(s) revoked",
            revoked,
            extra={"flow": "change_password", "account_id": dto.account_id},
        )
        return Outcome.success()

    def logout(self, dto: LogoutIn) -> Outcome[None]:
        """
        Revoke the presented refresh token, or all of them.

        The outcome does not depend on the refresh token's state, so it
        reveals nothing about it.

        :param dto: Access token (expiry ignored), refresh token, scope flag.
        :returns: ``TOKEN`` failure only when the access token is invalid.
        """
        claims = self.tokens.verify_access_token(dto.access_token, ignore_expiry=True)
        if claims is None:
            return Outcome.failure(AuthFailure.token())

        with self.rw_uow() as uow:
            if dto.all_sessions:
                revoked = self.ledger.revoke_all(claims.subject_id)
            elif dto.refresh_token:
                revoked = int(
                    self.ledger.revoke(
                        claims.subject_id, self.tokens.hash_secret(dto.refresh_token)
                    )
                )
            else:
                revoked = 0
            if uow.accounts.get(claims.subject_id) is not None:
                uow.account_logs.record(claims.subject_id, AccountAction.LOGOUT)

        log.info(
            "logout; %d refresh token(s) revoked",
            revoked,
            extra={"flow": "logout", "account_id": claims.subject_id},
        )
        return Outcome.success()

    def get_account(self, account_id: int) -> Outcome[AccountOut]:
        """Return the caller's own account; ``STATE`` if it is gone or disabled."""
        with self.ro_uow() as uow:
            account = uow.accounts.get(account_id)
            if account is None or not account.can_authenticate:
                return Outcome.failure(AuthFailure.state())
            return Outcome.success(
                AccountOut(
                    id=account.id,
                    email=account.email,
                    display_name=account.display_name,
                    email_confirmed=account.email_confirmed,
                    created_at=account.created_at,
                )
            )

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _issue_pair(self, account: Account) -> TokenPairOut:
        issued = self.tokens.issue(account)
        self.ledger.record(
            account.id, self.tokens.hash_secret(issued.refresh_token), issued.refresh_expires_at
        )
        return TokenPairOut(
            access_token=issued.access_token,
            access_expires_at=issued.access_expires_at,
            refresh_token=issued.refresh_token,
            refresh_expires_at=issued.refresh_expires_at,
        )

    def _issue_account_token(
        self,
        uow: SQLAlchemyUnitOfWork,
        account_id: int,
        purpose: TokenPurpose,
        lifetime: timedelta,
    ) -> str:
        """Store the digest of a new single-use token and return the plaintext."""
        token = secrets.token_urlsafe(ACCOUNT_TOKEN_BYTES)
        uow.account_tokens.replace(
            account_id,
            purpose,
            token_hash=self.tokens.hash_secret(token),
            expires_at=self.now_utc() + lifetime,
        )
        return token

    def _token_matches(self, row: AccountToken | None, token: str, now: datetime) -> bool:
        if row is None or not token or row.is_expired(now):
            return False
        return hmac.compare_digest(row.token_hash, self.tokens.hash_secret(token))

    def _link(self, base_url: str | None, path: str, account_id: int, token: str) -> str:
        base = (base_url or self.settings.base_url).rstrip("/")
        return f"{base}/{path}?{urlencode({'userId': account_id, 'token': token})}"

    def _log_rejected_login(self, account_id: int | None, reason: str, email: str) -> None:
        log.warning(
            "login rejected for %s",
            mask_email(email),
            extra={
                "flow": "login",
                "reason": reason,
                "account_id": account_id,
                "client_ip": self.ctx.client_ip,
            },
        )
