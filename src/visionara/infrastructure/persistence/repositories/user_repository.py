"""User repository for database operations."""

from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from visionara.infrastructure.persistence.models import UserModel


class UserRepository:
    """Repository for user database operations.

    Methods flush but never commit; the calling service owns the transaction.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session

    async def create(self, user: UserModel) -> UserModel:
        """Add a new user and flush so constraint violations surface here."""
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_by_id(self, user_id: str) -> UserModel | None:
        """Get a user by ID."""
        result = await self.session.execute(
            select(UserModel).where(UserModel.id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_by_id_with_role(self, user_id: str) -> UserModel | None:
        """Get a user by ID with the role relationship eagerly loaded."""
        result = await self.session.execute(
            select(UserModel)
            .where(UserModel.id == user_id)
            .options(selectinload(UserModel.role))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> UserModel | None:
        """Get a user by email address."""
        result = await self.session.execute(
            select(UserModel).where(UserModel.email == email)
        )
        return result.scalar_one_or_none()

    async def email_exists(self, email: str, exclude_user_id: str | None = None) -> bool:
        """Check whether an email is taken, optionally ignoring one user.

        Args:
            email: Email to check.
            exclude_user_id: User whose own email should not count as a clash.

        Returns:
            True if another user already has the email.
        """
        stmt = select(UserModel.id).where(UserModel.email == email)
        if exclude_user_id is not None:
            stmt = stmt.where(UserModel.id != exclude_user_id)
        result = await self.session.execute(stmt.limit(1))
        return result.scalar_one_or_none() is not None

    async def list_with_roles(self) -> list[UserModel]:
        """List all users, newest first, with roles loaded."""
        result = await self.session.execute(
            select(UserModel)
            .options(selectinload(UserModel.role))
            .order_by(UserModel.created_at.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def update_fields(self, user_id: str, values: dict[str, Any]) -> int:
        """Apply a partial update in a single statement.

        Args:
            user_id: User to update.
            values: Column values to set.

        Returns:
            Number of rows affected. Zero means the row is gone.
        """
        result = await self.session.execute(
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def delete(self, user_id: str) -> int:
        """Hard-delete a user.

        Returns:
            Number of rows deleted. Zero means the row was already gone.
        """
        result = await self.session.execute(
            delete(UserModel)
            .where(UserModel.id == user_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
