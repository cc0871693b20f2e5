import hashlib
import secrets
from datetime import datetime, timedelta, timezone

from jose import JWTError, ExpiredSignatureError, jwt
from passlib.context import CryptContext

from app.config import settings
from app.utils.exceptions import UnauthorizedException

# ─── Password Hashing ─────────────────────────────────────────────────────────
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.PASSWORD_BCRYPT_ROUNDS,
)

# bcrypt only looks at the first 72 bytes of its input
BCRYPT_MAX_BYTES = 72


def _bcrypt_input(plain_password: str) -> bytes:
    return plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password using bcrypt (random salt per call)."""
    return pwd_context.hash(_bcrypt_input(plain_password))


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain-text password against a bcrypt hash.
    A malformed or foreign hash verifies as False instead of raising.
    """
    try:
        return pwd_context.verify(_bcrypt_input(plain_password), hashed_password)
    except (ValueError, TypeError):
        return False


# ─── Opaque Access Tokens ─────────────────────────────────────────────────────
def generate_access_token() -> str:
    """Random URL-safe bearer token (ACCESS_TOKEN_BYTES of entropy)."""
    return secrets.token_urlsafe(settings.ACCESS_TOKEN_BYTES)


def hash_token(token: str) -> str:
    """SHA-256 hex digest used to look tokens up without storing them."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


# ─── Reset Proof (JWT) ────────────────────────────────────────────────────────
def create_reset_token(user_id: int) -> tuple[str, str]:
    """
    Short-lived JWT proving that an OTP was verified for user_id.
    Payload: sub (user_id), type, jti, exp
    Returns (token_string, jti); the jti is what makes the token single-use.
    """
    jti = secrets.token_urlsafe(16)
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES)
    payload = {
        "sub": str(user_id),
        "type": "reset",
        "jti": jti,
        "exp": expire,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM), jti


def verify_reset_token(token: str) -> tuple[int, str]:
    """
    Decode a reset token and return (user_id, jti).
    Raises 401 if invalid, expired or of the wrong type.
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError:
        raise UnauthorizedException("Reset token has expired. Request a new OTP.")
    except JWTError:
        raise UnauthorizedException("Invalid reset token")

    if payload.get("type") != "reset" or payload.get("sub") is None or not payload.get("jti"):
        raise UnauthorizedException("Invalid reset token")
    return int(payload["sub"]), payload["jti"]


# ─── OTP ──────────────────────────────────────────────────────────────────────
OTP_MIN = 100000
OTP_MAX = 999999


def generate_otp() -> int:
    """Uniform 6-digit code in [100000, 999999]; no leading zeros."""
    return OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1)
