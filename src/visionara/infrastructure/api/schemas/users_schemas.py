"""Pydantic schemas for user management endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, EmailStr, Field, SecretStr, field_validator


def _normalize_email(v: str | None) -> str | None:
    return v.strip().lower() if v is not None else v


class UserCreateRequest(BaseModel):
    """Request schema for creating a user in both systems of record."""

    email: EmailStr = Field(..., description="User's email address")
    password: SecretStr = Field(..., description="Initial password")
    display_name: str = Field(..., min_length=1, max_length=100, description="Display name")
    role_id: str = Field(..., min_length=1, description="Role ID (must exist)")

    normalize_email = field_validator("email")(_normalize_email)


class UserUpdateRequest(BaseModel):
    """Request schema for updating a user.

    All fields are optional. Only provided fields are changed; a password
    is rotated at the identity provider.
    """

    email: EmailStr | None = Field(None, description="New email address")
    display_name: str | None = Field(None, min_length=1, max_length=100)
    role_id: str | None = Field(None, min_length=1, description="New role ID")
    password: SecretStr | None = Field(None, description="New password")

    normalize_email = field_validator("email")(_normalize_email)


class RoleSummary(BaseModel):
    id: str
    name: str

    model_config = {"from_attributes": True}


class UserResponse(BaseModel):
    """User with its role."""

    id: str = Field(..., description="User ID (shared with the identity provider)")
    email: str
    display_name: str
    role_id: str
    role: RoleSummary | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserListResponse(BaseModel):
    items: list[UserResponse]
    total: int


class ProfileResponse(UserResponse):
    """The signed-in user's own account, with role permissions."""

    permissions: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_user(cls, user: Any) -> "ProfileResponse":
        profile = cls.model_validate(user)
        profile.permissions = dict(user.role.permissions or {}) if user.role else {}
        return profile
