"""Domain entities for Visionara."""

from visionara.domain.entities.audit_entry import AuditAction, AuditEntry
from visionara.domain.entities.principal import Principal
from visionara.domain.entities.verification_code import VerificationCode

__all__ = [
    "AuditAction",
    "AuditEntry",
    "Principal",
    "VerificationCode",
]
