from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # ─── Application ───────────────────────────────────────────────────────────
    APP_NAME: str = "User Account Service"
    APP_ENV:  str = "development"
    APP_HOST:  str = "0.0.0.0"
    APP_PORT:  int = 8000
    LOG_LEVEL: str = "INFO"

    # ─── Database ──────────────────────────────────────────────────────────────
    DATABASE_URL:          str
    DATABASE_POOL_SIZE:    int  = 10
    DATABASE_MAX_OVERFLOW: int  = 20
    DATABASE_POOL_TIMEOUT: int  = 30
    DATABASE_ECHO:         bool = False

    # ─── Credentials & Tokens ──────────────────────────────────────────────────
    SECRET_KEY:                 str
    ALGORITHM:                  str  = "HS256"
    PASSWORD_BCRYPT_ROUNDS:     int  = 12
    ACCESS_TOKEN_BYTES:         int  = 32
    RESET_TOKEN_EXPIRE_MINUTES: int  = 15
    RESET_TOKEN_REQUIRED:       bool = False

    # ─── OTP ───────────────────────────────────────────────────────────────────
    OTP_EXPIRE_MINUTES:          int = 5
    OTP_BACKEND:                 str = "memory"     # memory (dev only) | redis
    REDIS_URL:                   str = "redis://localhost:6379/0"
    OTP_STORE_TTL_GRACE_SECONDS: int = 60
    OTP_LOCK_TIMEOUT_SECONDS:    int = 5

    # ─── Mail ──────────────────────────────────────────────────────────────────
    MAIL_BACKEND:   str = "console"                 # console | resend
    MAIL_FROM:      str = "noreply@example.com"
    RESEND_API_KEY: str = ""

    # ─── CORS ──────────────────────────────────────────────────────────────────
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:8000"

    def get_cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",")]

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"

    model_config = {"env_file": ".env", "case_sensitive": True, "extra": "ignore"}


settings = Settings()
