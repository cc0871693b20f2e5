from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator


# ─── Helpers ──────────────────────────────────────────────────────────────────
def validate_password_strength(v: str) -> str:
    if len(v) < 8:
        raise ValueError("Password must be at least 8 characters")
    if not v.isprintable():
        raise ValueError("Password must contain printable characters only")
    return v


def validate_name(v: str) -> str:
    if not v.strip():
        raise ValueError("Name cannot be empty")
    return v.strip()


# ─── Request Schemas ──────────────────────────────────────────────────────────
class RegisterRequest(BaseModel):
    name:     str = Field(max_length=255)
    email:    EmailStr
    password: str

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        return validate_password_strength(v)

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        return validate_name(v)


class LoginRequest(BaseModel):
    email:    EmailStr
    password: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class VerifyOTPRequest(BaseModel):
    userId: int
    otp:    int


class ResetPasswordRequest(BaseModel):
    userId:               int
    password:             str
    passwordConfirmation: str
    resetToken:           str | None = None

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        return validate_password_strength(v)

    @model_validator(mode="after")
    def passwords_match(self) -> "ResetPasswordRequest":
        if self.password != self.passwordConfirmation:
            raise ValueError("Passwords do not match")
        return self


# ─── Response Schemas ─────────────────────────────────────────────────────────
class UserOut(BaseModel):
    id:        int
    name:      str
    email:     str
    createdAt: str | None = None
    updatedAt: str | None = None


class LoginResponse(BaseModel):
    user:      UserOut
    token:     str
    tokenType: str = "Bearer"


class OTPVerifyResponse(BaseModel):
    resetToken: str
