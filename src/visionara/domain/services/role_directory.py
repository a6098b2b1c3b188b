"""Lookup of valid roles."""

from sqlalchemy.ext.asyncio import AsyncSession

from visionara.core.errors import RoleNotFound
from visionara.infrastructure.persistence.models import RoleModel
from visionara.infrastructure.persistence.repositories import RoleRepository


class RoleDirectory:
    """Read-only view of the role reference data."""

    def __init__(self, session: AsyncSession) -> None:
        self.repo = RoleRepository(session)

    async def resolve(self, role_id: str) -> RoleModel:
        """Return the role or raise RoleNotFound."""
        role = await self.repo.get_by_id(role_id)
        if role is None:
            raise RoleNotFound()
        return role

    async def resolve_by_name(self, name: str) -> RoleModel:
        role = await self.repo.get_by_name(name)
        if role is None:
            raise RoleNotFound(f"Role '{name}' not found")
        return role

    async def list_roles(self) -> list[RoleModel]:
        return await self.repo.list_all()
