from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import Optional

from app.schemas.auth import validate_password_strength, validate_name


# ─── Request ──────────────────────────────────────────────────────────────────
class UserUpdateRequest(BaseModel):
    name:                 Optional[str] = Field(None, max_length=255)
    email:                Optional[EmailStr] = None
    password:             Optional[str] = None
    passwordConfirmation: Optional[str] = None

    @field_validator("name")
    @classmethod
    def check_name(cls, v):
        return validate_name(v) if v is not None else v

    @field_validator("password")
    @classmethod
    def check_password(cls, v):
        return validate_password_strength(v) if v is not None else v

    @model_validator(mode="after")
    def passwords_match(self) -> "UserUpdateRequest":
        if self.password is not None and self.password != self.passwordConfirmation:
            raise ValueError("Passwords do not match")
        return self
