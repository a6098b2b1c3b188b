"""Router for listing roles."""

from typing import Annotated

from fastapi import APIRouter, Depends

from visionara.domain.services.role_directory import RoleDirectory
from visionara.infrastructure.api.dependencies import CurrentPrincipal, get_role_directory
from visionara.infrastructure.api.schemas.role_schemas import RoleListResponse, RoleResponse

router = APIRouter(tags=["Roles"])


@router.get("", summary="List roles")
async def list_roles(
    _: CurrentPrincipal,
    directory: Annotated[RoleDirectory, Depends(get_role_directory)],
) -> RoleListResponse:
    roles = await directory.list_roles()
    return RoleListResponse(
        items=[RoleResponse.model_validate(role) for role in roles],
        total=len(roles),
    )
