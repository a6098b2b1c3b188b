"""Role repository for database operations."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from visionara.infrastructure.persistence.models import RoleModel


class RoleRepository:
    """Read-only repository for role reference data."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, role_id: str) -> RoleModel | None:
        result = await self.session.execute(
            select(RoleModel).where(RoleModel.id == role_id)
        )
        return result.scalar_one_or_none()

    async def get_by_name(self, name: str) -> RoleModel | None:
        result = await self.session.execute(
            select(RoleModel).where(RoleModel.name == name)
        )
        return result.scalar_one_or_none()

    async def list_all(self) -> list[RoleModel]:
        result = await self.session.execute(select(RoleModel).order_by(RoleModel.name.asc()))
        return list(result.scalars().all())
