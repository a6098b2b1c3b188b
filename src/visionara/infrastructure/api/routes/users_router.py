"""Router for user management.

Create, update and delete go through the identity synchronizer so the
identity provider and the local table stay consistent.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from visionara.core.errors import NotFound
from visionara.domain.entities import Principal
from visionara.domain.services.identity_synchronizer import IdentitySynchronizer
from visionara.infrastructure.api.dependencies import (
    DbSession,
    get_identity_synchronizer,
    require_permission,
)
from visionara.infrastructure.api.schemas.users_schemas import (
    UserCreateRequest,
    UserListResponse,
    UserResponse,
    UserUpdateRequest,
)
from visionara.infrastructure.persistence.repositories import UserRepository

router = APIRouter(tags=["Users"])

Synchronizer = Annotated[IdentitySynchronizer, Depends(get_identity_synchronizer)]


@router.get("", summary="List users")
async def list_users(
    _: Annotated[Principal, Depends(require_permission("users", "read"))],
    session: DbSession,
) -> UserListResponse:
    users = await UserRepository(session).list_with_roles()
    return UserListResponse(
        items=[UserResponse.model_validate(user) for user in users],
        total=len(users),
    )


@router.get("/{user_id}", summary="Get a user")
async def get_user(
    user_id: str,
    _: Annotated[Principal, Depends(require_permission("users", "read"))],
    session: DbSession,
) -> UserResponse:
    user = await UserRepository(session).get_by_id_with_role(user_id)
    if user is None:
        raise NotFound()
    return UserResponse.model_validate(user)


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create a user")
async def create_user(
    body: UserCreateRequest,
    actor: Annotated[Principal, Depends(require_permission("users", "write"))],
    synchronizer: Synchronizer,
) -> UserResponse:
    """Create the identity at the provider, then the local user row."""
    user = await synchronizer.create(
        actor_id=actor.user_id,
        email=body.email,
        password=body.password.get_secret_value(),
        display_name=body.display_name,
        role_id=body.role_id,
    )
    return UserResponse.model_validate(user)


@router.put("/{user_id}", summary="Update a user")
async def update_user(
    user_id: str,
    body: UserUpdateRequest,
    actor: Annotated[Principal, Depends(require_permission("users", "write"))],
    synchronizer: Synchronizer,
) -> UserResponse:
    user = await synchronizer.update(
        actor_id=actor.user_id,
        user_id=user_id,
        email=body.email,
        display_name=body.display_name,
        role_id=body.role_id,
        password=body.password.get_secret_value() if body.password else None,
    )
    return UserResponse.model_validate(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a user")
async def delete_user(
    user_id: str,
    actor: Annotated[Principal, Depends(require_permission("users", "delete"))],
    synchronizer: Synchronizer,
) -> None:
    """Hard-delete a user. Deleting your own account is rejected."""
    await synchronizer.delete(actor_id=actor.user_id, user_id=user_id)
