"""Router for the signed-in user's own profile."""

from typing import Annotated

from fastapi import APIRouter, Depends

from visionara.domain.services.profile_service import ProfileService
from visionara.infrastructure.api.dependencies import CurrentPrincipal, get_profile_service
from visionara.infrastructure.api.schemas.auth_schemas import DisplayNameRequest
from visionara.infrastructure.api.schemas.users_schemas import ProfileResponse

router = APIRouter(tags=["Profile"])

Profiles = Annotated[ProfileService, Depends(get_profile_service)]


@router.get("", summary="Get my profile")
async def get_me(principal: CurrentPrincipal, service: Profiles) -> ProfileResponse:
    return ProfileResponse.from_user(await service.get_profile(principal))


@router.patch("/display-name", summary="Change my display name")
async def update_display_name(
    body: DisplayNameRequest, principal: CurrentPrincipal, service: Profiles
) -> ProfileResponse:
    user = await service.update_display_name(principal, body.display_name)
    return ProfileResponse.from_user(user)
