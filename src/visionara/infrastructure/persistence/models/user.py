"""SQLAlchemy model for the users table.

The primary key is shared with the external identity provider: a row is
created with the id the provider assigned, never a locally generated one.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from visionara.infrastructure.persistence.database import Base


class UserModel(Base):
    """SQLAlchemy model for the users table.

    Attributes:
        id: Primary key, equal to the identity provider's user id.
        email: Unique email address.
        display_name: Name shown in the back office.
        role_id: Foreign key to roles table.
        created_at: Timestamp when the user was created.
        updated_at: Timestamp when the user was last updated.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        comment="User ID (identity provider UUID)",
    )
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
        comment="User email address",
    )
    display_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Display name",
    )
    role_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("roles.id"),
        nullable=False,
        index=True,
        comment="Foreign key to roles table",
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

    role: Mapped["RoleModel"] = relationship(  # noqa: F821
        "RoleModel",
        back_populates="users",
    )

    @property
    def role_name(self) -> str | None:
        """Get the role name. Requires the 'role' relationship to be loaded."""
        if self.role is not None:
            return self.role.name
        return None

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"
