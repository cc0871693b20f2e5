"""
One-time passcodes for the password recovery flow.

- One record per user, keyed "otp_<userId>"; a new request overwrites the old one
- Codes are 6 digits in 100000-999999, drawn from `secrets`
- Expiry is checked here at verify time against the creation timestamp,
  whatever the backend does with its own TTL
- A successful verify deletes the record under the same per-user lock,
  so a code can only ever succeed once
- Reset proofs handed out after a successful verify are tracked by jti
  in the same backend and can be spent once
"""

import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from app.utils.cache import KeyedStore
from app.utils.security import generate_otp

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class OtpVerifyResult(str, enum.Enum):
    SUCCESS   = "SUCCESS"
    NOT_FOUND = "NOT_FOUND"
    EXPIRED   = "EXPIRED"
    MISMATCH  = "MISMATCH"


@dataclass
class OtpRecord:
    userId:    int
    code:      int
    createdAt: datetime

    def to_dict(self) -> dict:
        return {
            "userId":    self.userId,
            "code":      self.code,
            "createdAt": self.createdAt.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "OtpRecord":
        return cls(
            userId=int(data["userId"]),
            code=int(data["code"]),
            createdAt=datetime.fromisoformat(data["createdAt"]),
        )


class OtpStore:

    def __init__(
        self,
        backend: KeyedStore,
        expire_minutes: int = 5,
        ttl_grace_seconds: int = 60,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.backend = backend
        self.window = timedelta(minutes=expire_minutes)
        self.ttl_seconds = int(self.window.total_seconds()) + ttl_grace_seconds
        self.clock = clock

    @staticmethod
    def _key(user_id: int) -> str:
        return f"otp_{user_id}"

    # ─── Request ──────────────────────────────────────────────────────────────
    def request(self, user_id: int) -> int:
        """Issue a fresh code for user_id, replacing any unconsumed one."""
        key = self._key(user_id)
        code = generate_otp()
        record = OtpRecord(userId=user_id, code=code, createdAt=self.clock())

        with self.backend.lock(key):
            self.backend.put(key, record.to_dict(), self.ttl_seconds)

        logger.info(f"OTP issued for user {user_id}")
        return code

    # ─── Verify ───────────────────────────────────────────────────────────────
    def verify(self, user_id: int, code: int) -> OtpVerifyResult:
        key = self._key(user_id)

        with self.backend.lock(key):
            data = self.backend.get(key)
            if data is None:
                logger.info(f"OTP verify for user {user_id}: no active code")
                return OtpVerifyResult.NOT_FOUND

            record = OtpRecord.from_dict(data)

            if self.clock() - record.createdAt > self.window:
                self.backend.delete(key)
                logger.info(f"OTP verify for user {user_id}: expired")
                return OtpVerifyResult.EXPIRED

            if int(code) != record.code:
                logger.warning(f"OTP verify for user {user_id}: mismatch")
                return OtpVerifyResult.MISMATCH

            self.backend.delete(key)

        logger.info(f"OTP verified for user {user_id}")
        return OtpVerifyResult.SUCCESS


    # ─── Reset proofs ─────────────────────────────────────────────────────────
    @staticmethod
    def _reset_key(jti: str) -> str:
        return f"reset_{jti}"

    def grant_reset(self, user_id: int, jti: str, ttl_seconds: int) -> None:
        """Record a freshly issued reset proof so it can be spent once."""
        key = self._reset_key(jti)
        with self.backend.lock(key):
            self.backend.put(key, {"userId": user_id}, ttl_seconds)

    def consume_reset(self, user_id: int, jti: str) -> bool:
        """True the first time a live proof for user_id is spent, False afterwards."""
        key = self._reset_key(jti)
        with self.backend.lock(key):
            data = self.backend.get(key)
            if data is None or int(data["userId"]) != user_id:
                return False
            self.backend.delete(key)
        return True
