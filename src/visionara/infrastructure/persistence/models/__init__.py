"""SQLAlchemy models for the Visionara identity tables.

All models inherit from the Base class defined in database.py.
"""

from visionara.infrastructure.persistence.models.audit_log import AuditLogModel
from visionara.infrastructure.persistence.models.role import RoleModel
from visionara.infrastructure.persistence.models.user import UserModel
from visionara.infrastructure.persistence.models.verification_code import (
    VerificationCodeModel,
)

__all__ = [
    "AuditLogModel",
    "RoleModel",
    "UserModel",
    "VerificationCodeModel",
]
