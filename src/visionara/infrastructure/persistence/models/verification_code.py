"""SQLAlchemy model for password-change verification codes.

Rows are never deleted; used and expired codes are retained for forensics.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from visionara.infrastructure.persistence.database import Base


class VerificationCodeModel(Base):
    """SQLAlchemy model for the verification_codes table.

    Attributes:
        id: Primary key (UUID string).
        user_id: Owner of the code.
        code_hash: Argon2id hash of the 6-digit code.
        expires_at: Timestamp after which the code is unusable.
        used_at: Timestamp when the code was consumed or invalidated.
        created_at: Issuance timestamp, used for rate limiting.
        failed_attempts: Wrong guesses made while the code was live.
    """

    __tablename__ = "verification_codes"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
        comment="Code ID (UUID)",
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        nullable=False,
        index=True,
        comment="Owning user ID (not a foreign key, codes outlive users)",
    )
    code_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Argon2id hash of the verification code",
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
        comment="Timestamp when the code expires",
    )
    used_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        index=True,
        comment="Timestamp when the code was used or invalidated",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
        comment="Timestamp when the code was issued",
    )
    failed_attempts: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
        comment="Wrong guesses made while the code was live",
    )

    def __repr__(self) -> str:
        return f"<VerificationCode(id={self.id}, user_id={self.user_id}, used={self.used_at is not None})>"
