"""Router for recording sign-ins done at the identity provider."""

from typing import Annotated

from fastapi import APIRouter, Depends

from visionara.domain.services.profile_service import ProfileService
from visionara.infrastructure.api.dependencies import CurrentPrincipal, get_profile_service
from visionara.infrastructure.api.schemas.auth_schemas import LoginRequest, LoginResponse
from visionara.infrastructure.api.schemas.users_schemas import ProfileResponse

router = APIRouter(tags=["Auth"])


@router.post("/login", summary="Record a sign-in")
async def login(
    body: LoginRequest,
    principal: CurrentPrincipal,
    service: Annotated[ProfileService, Depends(get_profile_service)],
) -> LoginResponse:
    """Confirm the token matches the claimed user and that a local account exists."""
    user = await service.record_login(principal, body.user_id)
    return LoginResponse(user=ProfileResponse.from_user(user))
