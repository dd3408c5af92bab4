# tests/unit/services/test_auth_service.py
"""
Flow tests for :class:`AuthService`.

The service runs against the transactional SQLite session, the SQL refresh
token ledger (ceiling of 3) and a recording mail gateway.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

import pytest
from freezegun import freeze_time
from mystorage_auth.models import Account, AccountAction, AccountToken, TokenPurpose
from mystorage_auth.repositories import AccountLogRepository
from mystorage_auth.services._shared.errors import ErrorKind
from mystorage_auth.services.auth.dto import (
    ChangePasswordIn,
    LoginIn,
    LogoutIn,
    RefreshIn,
    RegisterIn,
    ResetPasswordIn,
)
from mystorage_auth.services.auth.service import (
    CONFIRM_SUBJECT,
    INVALID_REFRESH_TOKEN,
    INVALID_RESET_TOKEN,
    RESET_SUBJECT,
)
from sqlalchemy import select
from tests.factories.account import DEFAULT_PASSWORD, AccountFactory
from tests.helpers.mail import link_in, link_params

NEW_PASSWORD = "N3w-Passw0rd"


def _login(service, account, password=DEFAULT_PASSWORD):
    outcome = service.login(LoginIn(email=account.email, password=password))
    assert outcome.ok, outcome.error
    return outcome.value


def _actions(session, account_id):
    return [row.action for row in AccountLogRepository(session=session).for_account(account_id)]


def _account_token(session, account_id, purpose):
    return session.execute(
        select(AccountToken).where(
            AccountToken.account_id == account_id, AccountToken.purpose == purpose
        )
    ).scalar_one_or_none()


def _in_future(**delta):
    return freeze_time(datetime.now(UTC) + timedelta(**delta))


# ------------------------------ Registration -------------------------------- #
class TestRegister:
    def test_creates_pending_account_and_mails_link(self, service, session, mail_outbox):
        outcome = service.register(
            RegisterIn(email="New.User@Example.com", password="S3cure!pw", display_name="New")
        )

        assert outcome.ok
        account = session.get(Account, outcome.value.account_id)
        assert account.email == "new.user@example.com"
        assert account.email_confirmed is False
        message = mail_outbox.last_to("new.user@example.com")
        assert message.subject == CONFIRM_SUBJECT
        assert link_in(message).startswith("https://app.test/confirm-email?")
        account_id, token = link_params(message)
        assert account_id == account.id
        # Only the digest is stored.
        row = _account_token(session, account.id, TokenPurpose.EMAIL_CONFIRMATION)
        assert row.token_hash == service.tokens.hash_secret(token)
        assert token not in row.token_hash

    def test_weak_password_lists_every_violation(self, service, mail_outbox):
        outcome = service.register(RegisterIn(email="weak@example.com", password="abc"))

        assert outcome.error.kind is ErrorKind.VALIDATION
        assert len(outcome.error.messages) == 4
        assert mail_outbox.outbox == []

    def test_duplicate_email_is_rejected_case_insensitively(self, service, mail_outbox):
        AccountFactory(email="taken@example.com")

        outcome = service.register(RegisterIn(email="TAKEN@example.com", password="S3cure!pw"))

        assert outcome.error.kind is ErrorKind.VALIDATION
        assert outcome.error.messages == ("Email is already registered.",)
        assert mail_outbox.outbox == []

    def test_mail_failure_keeps_pending_account(self, service, session, mail_outbox):
        mail_outbox.fail = True

        outcome = service.register(RegisterIn(email="nomail@example.com", password="S3cure!pw"))

        assert outcome.error.kind is ErrorKind.DEPENDENCY
        account = session.execute(
            select(Account).where(Account.email == "nomail@example.com")
        ).scalar_one()
        assert account.email_confirmed is False

    def test_base_url_override_is_used_in_link(self, service, mail_outbox):
        service.register(
            RegisterIn(email="link@example.com", password="S3cure!pw"),
            base_url="http://localhost:8000/api/v1/auth/",
        )

        link = link_in(mail_outbox.last_to("link@example.com"))
        assert link.startswith("http://localhost:8000/api/v1/auth/confirm-email?userId=")


# ------------------------------ Confirmation -------------------------------- #
class TestConfirmEmail:
    def _register(self, service, mail_outbox, email="confirm@example.com"):
        service.register(RegisterIn(email=email, password="S3cure!pw"))
        return link_params(mail_outbox.last_to(email))

    def test_valid_token_confirms_once(self, service, session, mail_outbox):
        account_id, token = self._register(service, mail_outbox)

        assert service.confirm_email(account_id, token) is True
        assert session.get(Account, account_id).email_confirmed is True
        assert _account_token(session, account_id, TokenPurpose.EMAIL_CONFIRMATION) is None
        assert AccountAction.EMAIL_CONFIRMED in _actions(session, account_id)
        assert service.confirm_email(account_id, token) is False

    def test_wrong_token_or_account_is_rejected(self, service, mail_outbox):
        account_id, token = self._register(service, mail_outbox)

        assert service.confirm_email(account_id, token + "x") is False
        assert service.confirm_email(account_id + 1000, token) is False
        assert service.confirm_email(account_id, "") is False

    def test_expired_token_is_rejected(self, service, session, mail_outbox):
        account_id, token = self._register(service, mail_outbox)

        with _in_future(hours=25):
            assert service.confirm_email(account_id, token) is False
        assert session.get(Account, account_id).email_confirmed is False


class TestResendConfirmation:
    def test_unknown_email(self, service):
        outcome = service.resend_confirmation("ghost@example.com")

        assert outcome.error.kind is ErrorKind.VALIDATION

    def test_already_confirmed(self, service):
        account = AccountFactory()

        outcome = service.resend_confirmation(account.email)

        assert outcome.error.messages == ("Email is already confirmed.",)

    def test_replaces_previous_token(self, service, mail_outbox):
        service.register(RegisterIn(email="again@example.com", password="S3cure!pw"))
        account_id, first = link_params(mail_outbox.last_to("again@example.com"))

        assert service.resend_confirmation("Again@Example.com").ok
        _, second = link_params(mail_outbox.last_to("again@example.com"))

        assert second != first
        assert service.confirm_email(account_id, first) is False
        assert service.confirm_email(account_id, second) is True

    def test_mail_failure(self, service, mail_outbox):
        account = AccountFactory(pending=True)
        mail_outbox.fail = True

        assert service.resend_confirmation(account.email).error.kind is ErrorKind.DEPENDENCY


# ------------------------------ Password reset ------------------------------ #
class TestPasswordReset:
    def _request(self, service, mail_outbox, account):
        assert service.request_password_reset(account.email).ok
        message = mail_outbox.last_to(account.email)
        assert message.subject == RESET_SUBJECT
        return link_params(message)

    def test_unknown_and_known_emails_look_identical(self, service, mail_outbox):
        account = AccountFactory()

        unknown = service.request_password_reset("nobody@example.com")
        known = service.request_password_reset(account.email)

        assert unknown == known
        assert unknown.ok
        assert [m.to_address for m in mail_outbox.outbox] == [account.email]

    def test_inactive_account_gets_no_email(self, service, mail_outbox):
        account = AccountFactory(is_active=False)

        assert service.request_password_reset(account.email).ok
        assert mail_outbox.outbox == []

    def test_mail_failure_is_not_surfaced(self, service, mail_outbox):
        account = AccountFactory()
        mail_outbox.fail = True

        assert service.request_password_reset(account.email).ok

    def test_reset_changes_password_and_revokes_sessions(self, service, session, mail_outbox):
        account = AccountFactory()
        pair = _login(service, account)
        account_id, token = self._request(service, mail_outbox, account)

        outcome = service.reset_password(ResetPasswordIn(account_id, token, NEW_PASSWORD))

        assert outcome.ok
        assert service.login(LoginIn(account.email, DEFAULT_PASSWORD)).error.kind is (
            ErrorKind.CREDENTIAL
        )
        assert service.login(LoginIn(account.email, NEW_PASSWORD)).ok
        refreshed = service.refresh_session(RefreshIn(pair.access_token, pair.refresh_token))
        assert refreshed.error.kind is ErrorKind.TOKEN
        assert AccountAction.PASSWORD_RESET in _actions(session, account_id)

    def test_token_is_single_use(self, service, mail_outbox):
        account = AccountFactory()
        account_id, token = self._request(service, mail_outbox, account)

        assert service.reset_password(ResetPasswordIn(account_id, token, NEW_PASSWORD)).ok
        again = service.reset_password(ResetPasswordIn(account_id, token, "An0ther!pass"))

        assert again.error.messages == (INVALID_RESET_TOKEN,)

    def test_newer_request_invalidates_older_token(self, service, mail_outbox):
        account = AccountFactory()
        account_id, old = self._request(service, mail_outbox, account)
        _, new = self._request(service, mail_outbox, account)

        stale = service.reset_password(ResetPasswordIn(account_id, old, NEW_PASSWORD))

        assert stale.error.messages == (INVALID_RESET_TOKEN,)
        assert service.reset_password(ResetPasswordIn(account_id, new, NEW_PASSWORD)).ok

    def test_expired_token_is_rejected(self, service, mail_outbox):
        account = AccountFactory()
        account_id, token = self._request(service, mail_outbox, account)

        with _in_future(minutes=61):
            outcome = service.reset_password(ResetPasswordIn(account_id, token, NEW_PASSWORD))

        assert outcome.error.messages == (INVALID_RESET_TOKEN,)

    def test_unknown_account_gets_generic_error(self, service):
        outcome = service.reset_password(ResetPasswordIn(987_654, "whatever", NEW_PASSWORD))

        assert outcome.error.messages == (INVALID_RESET_TOKEN,)

    def test_weak_password_keeps_token_usable(self, service, mail_outbox):
        account = AccountFactory()
        account_id, token = self._request(service, mail_outbox, account)

        weak = service.reset_password(ResetPasswordIn(account_id, token, "weak"))

        assert weak.error.kind is ErrorKind.VALIDATION
        assert INVALID_RESET_TOKEN not in weak.error.messages
        assert service.reset_password(ResetPasswordIn(account_id, token, NEW_PASSWORD)).ok


# ---------------------------------- Login ----------------------------------- #
class TestLogin:
    def test_issues_pair_and_records_refresh_token(self, service, session, codec):
        account = AccountFactory()

        pair = _login(service, account)

        claims = codec.verify_access_token(pair.access_token)
        assert claims.subject_id == account.id
        assert claims.email == account.email
        assert pair.refresh_expires_at > pair.access_expires_at
        entries = service.ledger.list_for_account(account.id)
        assert [e.token_hash for e in entries] == [codec.hash_secret(pair.refresh_token)]
        assert AccountAction.LOGIN in _actions(session, account.id)

    def test_email_lookup_is_case_insensitive(self, service):
        account = AccountFactory(email="mixed@example.com")

        assert service.login(LoginIn("MIXED@example.com", DEFAULT_PASSWORD)).ok

    def test_every_rejection_is_indistinguishable(self, service, session):
        confirmed = AccountFactory()
        pending = AccountFactory(pending=True)
        inactive = AccountFactory(is_active=False)

        failures = [
            service.login(LoginIn("ghost@example.com", DEFAULT_PASSWORD)).error,
            service.login(LoginIn(confirmed.email, "Wr0ng!pass")).error,
            service.login(LoginIn(pending.email, DEFAULT_PASSWORD)).error,
            service.login(LoginIn(inactive.email, DEFAULT_PASSWORD)).error,
        ]

        assert failures[0].kind is ErrorKind.CREDENTIAL
        assert all(failure == failures[0] for failure in failures)
        assert AccountAction.FAILED_LOGIN in _actions(session, confirmed.id)
        assert service.ledger.list_for_account(confirmed.id) == []

    def test_rejection_reason_goes_to_the_log_only(self, service, caplog):
        pending = AccountFactory(pending=True)
        caplog.set_level(logging.INFO, logger="mystorage_auth.services.auth.service")

        service.login(LoginIn(pending.email, DEFAULT_PASSWORD))

        reasons = [getattr(r, "reason", None) for r in caplog.records]
        assert "unconfirmed" in reasons
        assert all(pending.email not in r.getMessage() for r in caplog.records)

    def test_ceiling_evicts_oldest_session(self, service):
        account = AccountFactory()
        ceiling = service.settings.max_refresh_tokens
        pairs = [_login(service, account) for _ in range(ceiling + 1)]

        assert len(service.ledger.list_for_account(account.id)) == ceiling
        evicted = service.refresh_session(
            RefreshIn(pairs[0].access_token, pairs[0].refresh_token)
        )
        assert evicted.error.kind is ErrorKind.TOKEN
        latest = pairs[-1]
        assert service.refresh_session(RefreshIn(latest.access_token, latest.refresh_token)).ok


# --------------------------------- Refresh ---------------------------------- #
class TestRefreshSession:
    def test_rotates_and_rejects_replay(self, service, codec):
        account = AccountFactory()
        first = _login(service, account)

        second = service.refresh_session(RefreshIn(first.access_token, first.refresh_token))

        assert second.ok
        assert second.value.refresh_token != first.refresh_token
        replay = service.refresh_session(RefreshIn(first.access_token, first.refresh_token))
        assert replay.error.kind is ErrorKind.TOKEN
        assert replay.error.messages == (INVALID_REFRESH_TOKEN,)
        entries = {e.token_hash: e for e in service.ledger.list_for_account(account.id)}
        assert entries[codec.hash_secret(first.refresh_token)].revoked is True
        assert entries[codec.hash_secret(second.value.refresh_token)].revoked is False

    def test_accepts_expired_access_token(self, service):
        account = AccountFactory()
        pair = _login(service, account)

        with _in_future(minutes=30):
            outcome = service.refresh_session(RefreshIn(pair.access_token, pair.refresh_token))

        assert outcome.ok

    def test_expired_refresh_token_is_rejected(self, service):
        account = AccountFactory()
        pair = _login(service, account)

        with _in_future(days=8):
            outcome = service.refresh_session(RefreshIn(pair.access_token, pair.refresh_token))

        assert outcome.error.kind is ErrorKind.TOKEN

    def test_invalid_access_token_is_rejected(self, service):
        account = AccountFactory()
        pair = _login(service, account)

        outcome = service.refresh_session(RefreshIn("garbage", pair.refresh_token))

        assert outcome.error.kind is ErrorKind.TOKEN
        assert outcome.error.messages == (INVALID_REFRESH_TOKEN,)
        # The refresh token was not spent.
        assert service.refresh_session(RefreshIn(pair.access_token, pair.refresh_token)).ok

    def test_refresh_token_is_bound_to_its_account(self, service):
        mine = _login(service, AccountFactory())
        theirs = _login(service, AccountFactory())

        crossed = service.refresh_session(RefreshIn(theirs.access_token, mine.refresh_token))

        assert crossed.error.kind is ErrorKind.TOKEN
        assert service.refresh_session(RefreshIn(mine.access_token, mine.refresh_token)).ok

    @pytest.mark.parametrize("flag", ["is_active", "email_confirmed"])
    def test_unavailable_account_cannot_refresh(self, service, session, flag):
        active = _login(service, AccountFactory())
        account = AccountFactory()
        pair = _login(service, account)
        setattr(account, flag, False)
        session.flush()

        outcome = service.refresh_session(RefreshIn(pair.access_token, pair.refresh_token))
        bogus = service.refresh_session(RefreshIn(active.access_token, "not-a-real-secret"))

        assert outcome.error.kind is ErrorKind.TOKEN
        # Same answer as a bad secret on a healthy account.
        assert outcome.error == bogus.error


# ----------------------------- Change password ------------------------------ #
class TestChangePassword:
    def _change(self, service, account, current=DEFAULT_PASSWORD, new=NEW_PASSWORD, confirm=None):
        return service.change_password(
            ChangePasswordIn(account.id, current, new, new if confirm is None else confirm)
        )

    def test_success_revokes_every_refresh_token(self, service, session):
        account = AccountFactory()
        pairs = [_login(service, account) for _ in range(2)]

        assert self._change(service, account).ok

        for pair in pairs:
            refreshed = service.refresh_session(RefreshIn(pair.access_token, pair.refresh_token))
            assert refreshed.error.kind is ErrorKind.TOKEN
        assert service.login(LoginIn(account.email, NEW_PASSWORD)).ok
        assert AccountAction.PASSWORD_CHANGED in _actions(session, account.id)

    def test_confirmation_mismatch(self, service):
        outcome = self._change(service, AccountFactory(), confirm="Different-1")

        assert outcome.error.messages == ("New password and confirmation do not match.",)

    def test_policy_violation(self, service):
        outcome = self._change(service, AccountFactory(), new="short")

        assert outcome.error.kind is ErrorKind.VALIDATION
        assert "Password must be at least 8 characters long." in outcome.error.messages

    def test_wrong_current_password(self, service):
        account = AccountFactory()

        outcome = self._change(service, account, current="Wr0ng!pass")

        assert outcome.error.kind is ErrorKind.CREDENTIAL
        assert service.login(LoginIn(account.email, DEFAULT_PASSWORD)).ok

    def test_inactive_account(self, service):
        outcome = self._change(service, AccountFactory(is_active=False))

        assert outcome.error.kind is ErrorKind.STATE


# ---------------------------------- Logout ---------------------------------- #
class TestLogout:
    def test_revokes_only_the_presented_token(self, service, session):
        account = AccountFactory()
        kept, dropped = _login(service, account), _login(service, account)

        outcome = service.logout(LogoutIn(dropped.access_token, dropped.refresh_token))

        assert outcome.ok
        gone = service.refresh_session(RefreshIn(dropped.access_token, dropped.refresh_token))
        assert gone.error.kind is ErrorKind.TOKEN
        assert service.refresh_session(RefreshIn(kept.access_token, kept.refresh_token)).ok
        assert AccountAction.LOGOUT in _actions(session, account.id)

    def test_all_sessions(self, service):
        account = AccountFactory()
        pairs = [_login(service, account) for _ in range(2)]

        assert service.logout(LogoutIn(pairs[0].access_token, all_sessions=True)).ok
        assert all(e.revoked for e in service.ledger.list_for_account(account.id))

    def test_unknown_refresh_token_still_succeeds(self, service):
        pair = _login(service, AccountFactory())

        assert service.logout(LogoutIn(pair.access_token, "not-a-real-token")).ok

    def test_invalid_access_token(self, service):
        assert service.logout(LogoutIn("garbage")).error.kind is ErrorKind.TOKEN


# ------------------------------- Get account -------------------------------- #
def test_get_account(service):
    account = AccountFactory(display_name="Jane")

    outcome = service.get_account(account.id)

    assert outcome.value.email == account.email
    assert outcome.value.display_name == "Jane"
    assert service.get_account(999_999).error.kind is ErrorKind.STATE
    assert service.get_account(AccountFactory(pending=True).id).error.kind is ErrorKind.STATE


# ------------------------------ Full lifecycle ------------------------------ #
def test_register_confirm_login_refresh_change(service, mail_outbox):
    registered = service.register(RegisterIn(email="life@example.com", password="L1fe!cycle"))
    assert registered.ok
    assert service.login(LoginIn("life@example.com", "L1fe!cycle")).error.kind is (
        ErrorKind.CREDENTIAL
    )

    account_id, token = link_params(mail_outbox.last_to("life@example.com"))
    assert service.confirm_email(account_id, token) is True

    pair = service.login(LoginIn("life@example.com", "L1fe!cycle")).value
    rotated = service.refresh_session(RefreshIn(pair.access_token, pair.refresh_token)).value
    changed = service.change_password(
        ChangePasswordIn(account_id, "L1fe!cycle", NEW_PASSWORD, NEW_PASSWORD)
    )

    assert changed.ok
    assert service.refresh_session(
        RefreshIn(rotated.access_token, rotated.refresh_token)
    ).error.kind is ErrorKind.TOKEN
    assert service.login(LoginIn("life@example.com", NEW_PASSWORD)).ok
