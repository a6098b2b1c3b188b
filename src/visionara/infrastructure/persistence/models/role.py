"""SQLAlchemy model for the roles table.

Roles are immutable reference data seeded at setup time. The identity
subsystem only reads them.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from visionara.infrastructure.persistence.database import Base


class RoleModel(Base):
    """SQLAlchemy model for the roles table.

    Attributes:
        id: Primary key (UUID string).
        name: Unique role name (e.g., 'SuperAdmin', 'Editor').
        permissions: Map of resource name to allowed actions.
        created_at: Timestamp when the role was created.
        updated_at: Timestamp when the role was last updated.
    """

    __tablename__ = "roles"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
        comment="Role ID (UUID)",
    )
    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
        index=True,
        comment="Role name (e.g., 'SuperAdmin', 'Editor')",
    )
    permissions: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        comment="Resource -> allowed actions",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    users: Mapped[list["UserModel"]] = relationship(  # noqa: F821
        "UserModel",
        back_populates="role",
    )

    def allows(self, resource: str, action: str) -> bool:
        """Check whether this role grants ``action`` on ``resource``."""
        return action in (self.permissions or {}).get(resource, [])

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, name={self.name})>"
