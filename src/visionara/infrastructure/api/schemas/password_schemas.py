"""Pydantic schemas for verification-code password flows."""

from pydantic import BaseModel, EmailStr, Field, SecretStr, field_validator


def _normalize_email(v: str) -> str:
    return v.strip().lower()


class RequestCodeRequest(BaseModel):
    current_password: SecretStr | None = Field(None, description="Current password")


class ChangePasswordRequest(BaseModel):
    code: str = Field(..., min_length=1, description="6-digit verification code")
    new_password: SecretStr = Field(..., description="New password")


class ForgotRequestCodeRequest(BaseModel):
    email: EmailStr

    normalize_email = field_validator("email")(_normalize_email)


class ForgotVerifyCodeRequest(BaseModel):
    email: EmailStr
    code: str = Field(..., min_length=1)

    normalize_email = field_validator("email")(_normalize_email)


class ForgotResetRequest(BaseModel):
    email: EmailStr
    code: str = Field(..., min_length=1)
    new_password: SecretStr

    normalize_email = field_validator("email")(_normalize_email)


class OkResponse(BaseModel):
    ok: bool = True
    message: str | None = None
