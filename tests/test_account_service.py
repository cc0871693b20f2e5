"""
Service-level tests for registration, profile CRUD, login and recovery.
"""

from unittest.mock import patch

import pytest

from app.config import settings
from app.services import account_service as account_service_module
from app.services.account_service import build_account_service
from app.models.access_token import AccessToken
from app.models.user import User
from app.services.token_issuer import TokenIssuer
from app.utils.exceptions import (
    DuplicateEntryException, IdentityError, InvalidCredentialsException,
    NotFoundException, OTPExpiredException, OTPInvalidException,
    OTPNotFoundException, UnauthorizedException,
)
from app.utils.security import hash_token, verify_password, verify_reset_token


@pytest.fixture
def user(account_service, db_session):
    return account_service.register(db_session, "A", "a@x.com", "password1")


class TestRegister:

    def test_register_hashes_password_and_hides_it(self, account_service, db_session, user):
        assert user["email"] == "a@x.com"
        assert "password" not in user

        stored = db_session.get(User, user["id"])
        assert stored.password != "password1"
        assert verify_password("password1", stored.password)

    def test_duplicate_email(self, account_service, db_session, user):
        with pytest.raises(DuplicateEntryException):
            account_service.register(db_session, "B", "a@x.com", "password2")


class TestProfile:

    def test_get_user(self, account_service, db_session, user):
        assert account_service.get_user(db_session, user["id"])["name"] == "A"

    def test_get_missing_user(self, account_service, db_session):
        with pytest.raises(NotFoundException):
            account_service.get_user(db_session, 999)

    def test_partial_update_name_only(self, account_service, db_session, user):
        updated = account_service.update_user(db_session, user["id"], name="Alice")
        assert updated["name"] == "Alice"
        assert updated["email"] == "a@x.com"

    def test_update_password_rehashes(self, account_service, db_session, user):
        account_service.update_user(db_session, user["id"], password="different1")
        stored = db_session.get(User, user["id"])
        assert verify_password("different1", stored.password)

    def test_update_to_own_email_is_allowed(self, account_service, db_session, user):
        updated = account_service.update_user(db_session, user["id"], email="a@x.com")
        assert updated["email"] == "a@x.com"

    def test_update_to_taken_email(self, account_service, db_session, user):
        account_service.register(db_session, "B", "b@x.com", "password2")
        with pytest.raises(DuplicateEntryException):
            account_service.update_user(db_session, user["id"], email="b@x.com")

    def test_update_missing_user(self, account_service, db_session):
        with pytest.raises(NotFoundException):
            account_service.update_user(db_session, 999, name="X")

    def test_delete(self, account_service, db_session, user):
        account_service.delete_user(db_session, user["id"])
        with pytest.raises(NotFoundException):
            account_service.get_user(db_session, user["id"])

    def test_delete_missing_user(self, account_service, db_session):
        with pytest.raises(NotFoundException):
            account_service.delete_user(db_session, 999)

    def test_delete_removes_tokens(self, account_service, db_session, user):
        account_service.login(db_session, "a@x.com", "password1")
        account_service.delete_user(db_session, user["id"])
        assert db_session.query(AccessToken).count() == 0


class TestLogin:

    def test_login_returns_token(self, account_service, db_session, user):
        result = account_service.login(db_session, "a@x.com", "password1")
        assert result["user"]["id"] == user["id"]
        assert result["tokenType"] == "Bearer"

        stored = db_session.query(AccessToken).one()
        assert stored.tokenHash == hash_token(result["token"])
        assert stored.userId == user["id"]

    def test_wrong_password_and_unknown_email_look_the_same(self, account_service, db_session, user):
        with pytest.raises(InvalidCredentialsException) as wrong_password:
            account_service.login(db_session, "a@x.com", "password2")
        with pytest.raises(InvalidCredentialsException) as unknown_email:
            account_service.login(db_session, "nobody@x.com", "password1")
        assert wrong_password.value.detail == unknown_email.value.detail

    def test_unknown_email_still_checks_a_digest(self, account_service, db_session):
        with patch.object(account_service_module, "verify_password", return_value=False) as verify:
            with pytest.raises(InvalidCredentialsException):
                account_service.login(db_session, "nobody@x.com", "password1")
        verify.assert_called_once_with("password1", account_service_module._DUMMY_DIGEST)

    def test_dummy_digest_never_matches(self):
        assert not verify_password("password1", account_service_module._DUMMY_DIGEST)

    def test_each_login_issues_a_new_token(self, account_service, db_session, user):
        first = account_service.login(db_session, "a@x.com", "password1")["token"]
        second = account_service.login(db_session, "a@x.com", "password1")["token"]
        assert first != second


class TestTokenIssuer:

    def test_unknown_user_is_identity_error(self, db_session):
        with pytest.raises(IdentityError):
            TokenIssuer().issue(db_session, 999)

    def test_resolve(self, db_session, user):
        issuer = TokenIssuer()
        token = issuer.issue(db_session, user["id"])
        assert issuer.resolve(db_session, token).id == user["id"]
        assert db_session.query(AccessToken).one().lastUsedAt is not None
        assert issuer.resolve(db_session, "unknown-token") is None


class TestRecovery:

    def test_forgot_password_mails_code(self, account_service, db_session, notifier, user):
        result = account_service.forgot_password(db_session, "a@x.com")
        assert result is None
        assert notifier.sent[-1]["to"] == "a@x.com"
        code = notifier.last_code()
        assert 100000 <= code <= 999999

    def test_forgot_password_unknown_email(self, account_service, db_session, notifier):
        with pytest.raises(NotFoundException):
            account_service.forgot_password(db_session, "nobody@x.com")
        assert notifier.sent == []

    def test_verify_otp_returns_reset_token(self, account_service, db_session, notifier, user):
        account_service.forgot_password(db_session, "a@x.com")
        token = account_service.verify_otp(user["id"], notifier.last_code())
        assert verify_reset_token(token)[0] == user["id"]

    def test_verify_otp_errors(self, account_service, db_session, notifier, clock, user):
        with pytest.raises(OTPNotFoundException):
            account_service.verify_otp(user["id"], 123456)

        account_service.forgot_password(db_session, "a@x.com")
        code = notifier.last_code()
        with pytest.raises(OTPInvalidException):
            account_service.verify_otp(user["id"], 100000 if code != 100000 else 999999)

        clock.advance(minutes=6)
        with pytest.raises(OTPExpiredException):
            account_service.verify_otp(user["id"], code)
        with pytest.raises(OTPNotFoundException):
            account_service.verify_otp(user["id"], code)

    def test_reset_password(self, account_service, db_session, user):
        account_service.reset_password(db_session, user["id"], "newpass123")
        with pytest.raises(InvalidCredentialsException):
            account_service.login(db_session, "a@x.com", "password1")
        assert account_service.login(db_session, "a@x.com", "newpass123")["token"]

    def test_reset_password_missing_user(self, account_service, db_session):
        with pytest.raises(NotFoundException):
            account_service.reset_password(db_session, 999, "newpass123")

    def test_reset_token_for_other_user_rejected(self, account_service, db_session, notifier, user):
        other = account_service.register(db_session, "B", "b@x.com", "password2")
        account_service.forgot_password(db_session, "b@x.com")
        token = account_service.verify_otp(other["id"], notifier.last_code())
        with pytest.raises(UnauthorizedException):
            account_service.reset_password(db_session, user["id"], "newpass123", token)

    def test_reset_token_required_when_configured(self, account_service, db_session, notifier, user, monkeypatch):
        monkeypatch.setattr(settings, "RESET_TOKEN_REQUIRED", True)
        with pytest.raises(UnauthorizedException):
            account_service.reset_password(db_session, user["id"], "newpass123")

        account_service.forgot_password(db_session, "a@x.com")
        token = account_service.verify_otp(user["id"], notifier.last_code())
        account_service.reset_password(db_session, user["id"], "newpass123", token)
        assert account_service.login(db_session, "a@x.com", "newpass123")["token"]

    def test_reset_token_is_single_use(self, account_service, db_session, notifier, user):
        account_service.forgot_password(db_session, "a@x.com")
        token = account_service.verify_otp(user["id"], notifier.last_code())
        account_service.reset_password(db_session, user["id"], "newpass123", token)

        with pytest.raises(UnauthorizedException) as exc:
            account_service.reset_password(db_session, user["id"], "attacker99", token)
        assert "already been used" in exc.value.message
        assert account_service.login(db_session, "a@x.com", "newpass123")["token"]


class TestBuildAccountService:

    def test_memory_backend_refused_in_production(self, monkeypatch):
        monkeypatch.setattr(settings, "APP_ENV", "production")
        monkeypatch.setattr(settings, "OTP_BACKEND", "memory")
        with pytest.raises(ValueError):
            build_account_service()

    def test_memory_backend_allowed_in_development(self, monkeypatch):
        monkeypatch.setattr(settings, "APP_ENV", "development")
        monkeypatch.setattr(settings, "OTP_BACKEND", "memory")
        service = build_account_service()
        assert service.otp_store.window.total_seconds() == settings.OTP_EXPIRE_MINUTES * 60
