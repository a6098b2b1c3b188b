"""Append-only audit ledger.

Every successful privileged mutation records one entry here, after the
mutation has committed. A failed ledger write is logged and swallowed so
that an audit outage never blocks administrative work.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from visionara.core.best_effort import best_effort
from visionara.core.clock import Clock, utc_now
from visionara.core.logging import get_logger
from visionara.domain.entities import AuditAction, AuditEntry
from visionara.infrastructure.persistence.models import AuditLogModel
from visionara.infrastructure.persistence.repositories import AuditLogRepository

logger = get_logger(__name__)


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


class AuditLedger:
    """Pure sink for audit entries."""

    def __init__(self, session: AsyncSession, clock: Clock = utc_now) -> None:
        """Initialize the ledger.

        Args:
            session: Session to write through. The entry is committed on its
                own, so pending work of the caller must already be committed.
            clock: Time source for ``created_at``.
        """
        self.session = session
        self.clock = clock
        self.repo = AuditLogRepository(session)

    async def append(
        self,
        actor_id: str | None,
        action: AuditAction,
        entity: str,
        entity_id: str | None = None,
        diff: dict[str, Any] | None = None,
    ) -> AuditEntry | None:
        """Write one entry.

        Args:
            actor_id: Acting user, None for system actions.
            action: Kind of change.
            entity: Affected entity name.
            entity_id: Affected record, None for system-wide actions.
            diff: ``{"oldValues": ..., "newValues": ...}``.

        Returns:
            The stored entry, or None if the write failed.
        """
        try:
            entry = await self.repo.create(
                AuditLogModel(
                    actor_id=actor_id,
                    action=AuditAction(action).value,
                    entity=entity,
                    entity_id=entity_id,
                    diff=_jsonable(diff or {}),
                    created_at=self.clock(),
                )
            )
            await self.session.commit()
        except Exception as e:
            logger.error(
                "Audit ledger write failed",
                action=str(action),
                entity=entity,
                entity_id=entity_id,
                error=str(e),
            )
            await best_effort(self.session.rollback(), "audit ledger rollback")
            return None

        logger.debug("Audit entry written", audit_id=entry.id, action=entry.action, entity=entity)
        return self.repo.to_entity(entry)
