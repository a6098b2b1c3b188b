"""Audit log repository for the append-only ledger.

Entries are linked into a hash chain: each stores its own checksum and the
checksum of the entry before it, so any edit or removal is detectable.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from visionara.domain.entities import AuditAction, AuditEntry
from visionara.domain.services.audit_checksum import AuditChecksum
from visionara.infrastructure.persistence.models import AuditLogModel


class AuditLogRepository:
    """Repository for audit log database operations.

    Write-only apart from reads for verification and inspection. UPDATE and
    DELETE are deliberately absent.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session

    async def create(self, audit_log: AuditLogModel) -> AuditLogModel:
        """Append an entry, linking it to the current chain head.

        Args:
            audit_log: Model to insert (without checksum/previous_hash).

        Returns:
            The inserted model with id, checksum and previous_hash set.
        """
        audit_log.previous_hash = await self._get_latest_checksum()
        audit_log.checksum = self._calculate_checksum(audit_log)

        self.session.add(audit_log)
        await self.session.flush()
        await self.session.refresh(audit_log)
        return audit_log

    async def _get_latest_checksum(self) -> str | None:
        result = await self.session.execute(
            select(AuditLogModel.checksum).order_by(AuditLogModel.id.desc()).limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _calculate_checksum(audit_log: AuditLogModel) -> str:
        return AuditChecksum.calculate(
            actor_id=audit_log.actor_id,
            action=audit_log.action,
            entity=audit_log.entity,
            entity_id=audit_log.entity_id,
            diff=audit_log.diff,
            created_at=audit_log.created_at,
            previous_hash=audit_log.previous_hash,
        )

    async def count_all(self) -> int:
        """Count total number of audit entries."""
        result = await self.session.execute(select(func.count(AuditLogModel.id)))
        return result.scalar_one() or 0

    async def list_for_entity(
        self, entity: str, entity_id: str | None = None
    ) -> list[AuditLogModel]:
        """List entries for an entity in write order.

        Args:
            entity: Entity name, e.g. 'users'.
            entity_id: Restrict to one record when given.
        """
        stmt = select(AuditLogModel).where(AuditLogModel.entity == entity)
        if entity_id is not None:
            stmt = stmt.where(AuditLogModel.entity_id == entity_id)
        result = await self.session.execute(stmt.order_by(AuditLogModel.id.asc()))
        return list(result.scalars().all())

    async def verify_integrity_chain(self) -> tuple[bool, list[str]]:
        """Verify every checksum and every previous_hash link.

        Returns:
            Tuple of (is_valid, list_of_errors). The list is empty when valid.
        """
        errors: list[str] = []

        result = await self.session.execute(
            select(AuditLogModel).order_by(AuditLogModel.id.asc())
        )
        entries = list(result.scalars().all())

        previous_checksum = None
        for entry in entries:
            calculated = self._calculate_checksum(entry)
            if entry.checksum != calculated:
                errors.append(
                    f"Entry {entry.id}: Checksum mismatch. "
                    f"Expected {calculated}, got {entry.checksum}"
                )
            if entry.previous_hash != previous_checksum:
                errors.append(
                    f"Entry {entry.id}: Previous hash mismatch. "
                    f"Expected {previous_checksum}, got {entry.previous_hash}"
                )
            previous_checksum = entry.checksum

        return len(errors) == 0, errors

    @staticmethod
    def to_entity(model: AuditLogModel) -> AuditEntry:
        return AuditEntry(
            id=model.id,
            action=AuditAction(model.action),
            entity=model.entity,
            created_at=model.created_at,
            actor_id=model.actor_id,
            entity_id=model.entity_id,
            diff=model.diff,
            checksum=model.checksum,
            previous_hash=model.previous_hash,
        )
