"""Repositories for database access."""

from visionara.infrastructure.persistence.repositories.audit_log_repository import (
    AuditLogRepository,
)
from visionara.infrastructure.persistence.repositories.role_repository import RoleRepository
from visionara.infrastructure.persistence.repositories.user_repository import UserRepository
from visionara.infrastructure.persistence.repositories.verification_code_repository import (
    VerificationCodeRepository,
)

__all__ = [
    "AuditLogRepository",
    "RoleRepository",
    "UserRepository",
    "VerificationCodeRepository",
]
