import logging

from sqlalchemy.orm import Session

from app.config import settings
from app.models.user import User
from app.services.otp_store import OtpStore, OtpVerifyResult
from app.services.token_issuer import TokenIssuer, token_issuer
from app.utils.cache import build_store
from app.utils.email import Notifier, build_notifier, send_otp_email
from app.utils.security import (
    hash_password, verify_password,
    create_reset_token, verify_reset_token,
)
from app.utils.exceptions import (
    NotFoundException, DuplicateEntryException, InvalidCredentialsException,
    OTPInvalidException, OTPExpiredException, OTPNotFoundException,
    UnauthorizedException,
)

logger = logging.getLogger(__name__)

# Checked against when the email is unknown so both login paths pay the bcrypt cost
_DUMMY_DIGEST = hash_password("unknown-account-placeholder")


def serialize_user(u: User) -> dict:
    """Public view of a user. The password hash never leaves the service."""
    return {
        "id":        u.id,
        "name":      u.name,
        "email":     u.email,
        "createdAt": u.createdAt.isoformat() if u.createdAt else None,
        "updatedAt": u.updatedAt.isoformat() if u.updatedAt else None,
    }


class AccountService:

    def __init__(self, otp_store: OtpStore, notifier: Notifier, issuer: TokenIssuer = token_issuer):
        self.otp_store = otp_store
        self.notifier = notifier
        self.issuer = issuer

    def _get_or_404(self, db: Session, user_id: int) -> User:
        u = db.get(User, user_id)
        if not u:
            raise NotFoundException("User")
        return u

    # ─── Register ─────────────────────────────────────────────────────────────
    def register(self, db: Session, name: str, email: str, password: str) -> dict:
        if db.query(User).filter(User.email == email).first():
            raise DuplicateEntryException("Email already registered", field="email")

        u = User(name=name, email=email, password=hash_password(password))
        db.add(u)
        db.commit()
        db.refresh(u)

        logger.info(f"User {u.id} registered")
        return serialize_user(u)

    # ─── Get by ID ────────────────────────────────────────────────────────────
    def get_user(self, db: Session, user_id: int) -> dict:
        return serialize_user(self._get_or_404(db, user_id))

    # ─── Update ───────────────────────────────────────────────────────────────
    def update_user(
        self, db: Session, user_id: int,
        name: str | None = None,
        email: str | None = None,
        password: str | None = None,
    ) -> dict:
        u = self._get_or_404(db, user_id)

        if email is not None and email != u.email:
            if db.query(User).filter(User.email == email, User.id != user_id).first():
                raise DuplicateEntryException("Email already used by another user", field="email")

        if name is not None:     u.name     = name
        if email is not None:    u.email    = email
        if password is not None: u.password = hash_password(password)

        db.commit()
        db.refresh(u)

        logger.info(f"User {u.id} updated")
        return serialize_user(u)

    # ─── Delete ───────────────────────────────────────────────────────────────
    def delete_user(self, db: Session, user_id: int) -> None:
        u = self._get_or_404(db, user_id)
        db.delete(u)
        db.commit()
        logger.info(f"User {user_id} deleted")

    # ─── Login ────────────────────────────────────────────────────────────────
    def login(self, db: Session, email: str, password: str) -> dict:
        u = db.query(User).filter(User.email == email).first()

        password_ok = verify_password(password, u.password if u else _DUMMY_DIGEST)
        if not u or not password_ok:
            logger.warning("Failed login attempt")
            raise InvalidCredentialsException()

        token = self.issuer.issue(db, u.id)
        logger.info(f"User {u.id} logged in")
        return {
            "user":      serialize_user(u),
            "token":     token,
            "tokenType": "Bearer",
        }

    # ─── Forgot Password ──────────────────────────────────────────────────────
    def forgot_password(self, db: Session, email: str) -> None:
        """
        Issue an OTP for the account owning email and mail it.
        The code is never part of the return value.
        """
        u = db.query(User).filter(User.email == email).first()
        if not u:
            raise NotFoundException("User")

        code = self.otp_store.request(u.id)
        if not send_otp_email(self.notifier, u.email, u.name, code):
            logger.error(f"OTP mail for user {u.id} was not delivered")

    # ─── Verify OTP ───────────────────────────────────────────────────────────
    def verify_otp(self, user_id: int, code: int) -> str:
        """
        Consume the user's OTP. On success returns a short-lived reset token
        that reset_password accepts as proof of verification.
        """
        result = self.otp_store.verify(user_id, code)

        if result is OtpVerifyResult.NOT_FOUND:
            raise OTPNotFoundException()
        if result is OtpVerifyResult.EXPIRED:
            raise OTPExpiredException()
        if result is OtpVerifyResult.MISMATCH:
            raise OTPInvalidException()

        token, jti = create_reset_token(user_id)
        self.otp_store.grant_reset(user_id, jti, settings.RESET_TOKEN_EXPIRE_MINUTES * 60)
        return token

    # ─── Reset Password ───────────────────────────────────────────────────────
    def reset_password(
        self, db: Session, user_id: int, new_password: str, reset_token: str | None = None,
    ) -> None:
        """
        Set a new password after OTP verification.

        Unless RESET_TOKEN_REQUIRED is on, the caller is trusted to have run
        verify_otp first; a reset token, when given, is always checked
        and spent.
        """
        if reset_token is None and settings.RESET_TOKEN_REQUIRED:
            raise UnauthorizedException("Reset token is required")
        if reset_token is not None:
            token_user_id, jti = verify_reset_token(reset_token)
            if token_user_id != user_id:
                raise UnauthorizedException("Reset token does not match this user")
            if not self.otp_store.consume_reset(user_id, jti):
                raise UnauthorizedException("Reset token has already been used")

        u = self._get_or_404(db, user_id)
        u.password = hash_password(new_password)
        db.commit()
        logger.info(f"Password reset for user {user_id}")


def build_account_service() -> AccountService:
    backend = build_store(
        settings.OTP_BACKEND,
        settings.REDIS_URL,
        settings.OTP_LOCK_TIMEOUT_SECONDS,
        production=settings.is_production,
    )
    otp_store = OtpStore(
        backend,
        expire_minutes=settings.OTP_EXPIRE_MINUTES,
        ttl_grace_seconds=settings.OTP_STORE_TTL_GRACE_SECONDS,
    )
    return AccountService(otp_store, build_notifier())


account_service = build_account_service()
