"""SQLAlchemy model for the audit_log table.

Entries are immutable (write-once) and form a hash chain: every row stores
its own checksum and the checksum of the row before it.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Integer, String, event, text
from sqlalchemy.orm import Mapped, mapped_column

from visionara.infrastructure.persistence.database import Base


class AuditLogModel(Base):
    """SQLAlchemy model for the audit_log table.

    One row per privileged mutation. UPDATE and DELETE are rejected by
    database triggers.

    Attributes:
        id: Auto-incrementing primary key, also the chain sequence number.
        actor_id: User who performed the action (NULL for system actions).
        action: CREATE, UPDATE, DELETE, LOGIN, SETUP or PASSWORD_CHANGE.
        entity: Name of the affected entity (e.g., 'users').
        entity_id: ID of the affected record (NULL for system-wide actions).
        diff: Structured change, ``{"oldValues": ..., "newValues": ...}``.
        created_at: Timestamp when the entry was written (UTC).
        checksum: SHA-256 hash of this entry.
        previous_hash: Checksum of the previous entry.
    """

    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    actor_id: Mapped[str | None] = mapped_column(
        String(36),
        nullable=True,
        index=True,
        comment="ID of the acting user (NULL for system actions)",
    )
    action: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        index=True,
        comment="Audit action",
    )
    entity: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Affected entity name",
    )
    entity_id: Mapped[str | None] = mapped_column(
        String(36),
        nullable=True,
        index=True,
        comment="ID of the affected record",
    )
    diff: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        comment="Old and/or new values",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
        comment="Timestamp when the entry was written (UTC)",
    )
    checksum: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        comment="SHA-256 hash of this audit entry",
    )
    previous_hash: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        comment="Checksum of the previous audit entry",
    )

    def __repr__(self) -> str:
        return (
            f"<AuditLog(id={self.id}, action={self.action}, "
            f"entity={self.entity}, entity_id={self.entity_id})>"
        )


@event.listens_for(AuditLogModel.__table__, "after_create")
def create_immutability_triggers(target, connection, **kw):
    """Create SQLite triggers that abort UPDATE and DELETE on audit_log.

    PostgreSQL deployments get the equivalent triggers from the Alembic
    migration.
    """
    if connection.dialect.name != "sqlite":
        return

    connection.execute(
        text(
            """
            CREATE TRIGGER IF NOT EXISTS prevent_audit_log_update
            BEFORE UPDATE ON audit_log
            BEGIN
                SELECT RAISE(ABORT, 'Audit log entries are immutable and cannot be updated');
            END;
            """
        )
    )
    connection.execute(
        text(
            """
            CREATE TRIGGER IF NOT EXISTS prevent_audit_log_delete
            BEFORE DELETE ON audit_log
            BEGIN
                SELECT RAISE(ABORT, 'Audit log entries are immutable and cannot be deleted');
            END;
            """
        )
    )
