"""Verification code repository for database operations."""

from datetime import datetime, timezone

from sqlalchemy import Select, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from visionara.domain.entities import VerificationCode
from visionara.infrastructure.persistence.models import VerificationCodeModel


def _as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class VerificationCodeRepository:
    """Repository for verification code database operations.

    Methods flush but never commit; the calling service owns the transaction.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session

    async def create(self, code: VerificationCode) -> VerificationCode:
        """Persist a newly issued code."""
        model = VerificationCodeModel(
            id=code.id,
            user_id=code.user_id,
            code_hash=code.code_hash,
            expires_at=code.expires_at,
            used_at=code.used_at,
            created_at=code.created_at,
            failed_attempts=code.failed_attempts,
        )
        self.session.add(model)
        await self.session.flush()
        return code

    async def get_by_id(self, code_id: str) -> VerificationCode | None:
        result = await self.session.execute(
            select(VerificationCodeModel)
            .where(VerificationCodeModel.id == code_id)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def count_created_since(self, user_id: str, since: datetime) -> int:
        """Count codes issued to a user at or after ``since``.

        Used and expired codes count too; the limit is on issuance.
        """
        result = await self.session.execute(
            select(func.count(VerificationCodeModel.id)).where(
                VerificationCodeModel.user_id == user_id,
                VerificationCodeModel.created_at >= since,
            )
        )
        return result.scalar_one() or 0

    async def list_live_for_user(self, user_id: str, now: datetime) -> list[VerificationCode]:
        """List a user's unused, unexpired codes, newest first."""
        result = await self.session.execute(
            select(VerificationCodeModel)
            .where(
                VerificationCodeModel.user_id == user_id,
                VerificationCodeModel.used_at.is_(None),
                VerificationCodeModel.expires_at > now,
            )
            .order_by(VerificationCodeModel.created_at.desc())
        )
        return [self._to_entity(model) for model in result.scalars().all()]

    @staticmethod
    def unused_rows_for_update(user_id: str) -> Select:
        """Select a user's unused code ids with row locks, in id order."""
        return (
            select(VerificationCodeModel.id)
            .where(
                VerificationCodeModel.user_id == user_id,
                VerificationCodeModel.used_at.is_(None),
            )
            .order_by(VerificationCodeModel.id)
            .with_for_update()
        )

    async def lock_unused_for_user(self, user_id: str) -> list[str]:
        """Row-lock every unused code of a user before updating several of them.

        Locks are always taken in id order, so two transactions working on
        the same user queue behind each other instead of deadlocking. SQLite
        has no row locks and the clause is dropped there.

        Returns:
            IDs of the locked codes.
        """
        result = await self.session.execute(self.unused_rows_for_update(user_id))
        return list(result.scalars().all())

    async def mark_used_if_unused(self, code_id: str, used_at: datetime) -> bool:
        """Atomically claim a code.

        The conditional update only matches while ``used_at`` is NULL, so of
        two concurrent claims exactly one sees a row affected.

        Returns:
            True if this call claimed the code.
        """
        result = await self.session.execute(
            update(VerificationCodeModel)
            .where(
                VerificationCodeModel.id == code_id,
                VerificationCodeModel.used_at.is_(None),
            )
            .values(used_at=used_at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def invalidate_unused_for_user(
        self, user_id: str, used_at: datetime, exclude_id: str | None = None
    ) -> int:
        """Mark every other unused code of a user as used.

        Returns:
            Number of codes invalidated.
        """
        stmt = update(VerificationCodeModel).where(
            VerificationCodeModel.user_id == user_id,
            VerificationCodeModel.used_at.is_(None),
        )
        if exclude_id is not None:
            stmt = stmt.where(VerificationCodeModel.id != exclude_id)
        result = await self.session.execute(
            stmt.values(used_at=used_at).execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def record_failed_attempt(self, user_id: str, now: datetime, max_attempts: int) -> int:
        """Count a wrong guess against every live code of a user.

        Codes whose count reaches ``max_attempts`` are marked used.

        Returns:
            Number of codes invalidated by this attempt.
        """
        live = (
            VerificationCodeModel.user_id == user_id,
            VerificationCodeModel.used_at.is_(None),
            VerificationCodeModel.expires_at > now,
        )
        await self.session.execute(
            update(VerificationCodeModel)
            .where(*live)
            .values(failed_attempts=VerificationCodeModel.failed_attempts + 1)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(
            update(VerificationCodeModel)
            .where(*live, VerificationCodeModel.failed_attempts >= max_attempts)
            .values(used_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    @staticmethod
    def _to_entity(model: VerificationCodeModel) -> VerificationCode:
        return VerificationCode(
            id=model.id,
            user_id=model.user_id,
            code_hash=model.code_hash,
            expires_at=_as_utc(model.expires_at),
            created_at=_as_utc(model.created_at),
            used_at=_as_utc(model.used_at),
            failed_attempts=model.failed_attempts,
        )
