"""Pydantic schemas for sign-in and profile endpoints."""

from pydantic import BaseModel, Field

from visionara.infrastructure.api.schemas.users_schemas import ProfileResponse


class LoginRequest(BaseModel):
    """Sent by the client after it signed in at the identity provider."""

    user_id: str = Field(..., min_length=1, description="Identity the client signed in as")
    email: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    success: bool = True
    user: ProfileResponse


class DisplayNameRequest(BaseModel):
    # Length is checked after trimming by the service
    display_name: str = Field(..., description="New display name (1-100 characters)")
