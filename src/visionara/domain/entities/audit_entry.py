"""Audit entry entity and action enumeration."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class AuditAction(str, Enum):
    """Kinds of privileged state change recorded in the ledger."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    LOGIN = "LOGIN"
    SETUP = "SETUP"
    PASSWORD_CHANGE = "PASSWORD_CHANGE"


@dataclass
class AuditEntry:
    """Append-only record of who changed what.

    Attributes:
        action: What kind of change happened.
        entity: Name of the affected entity (e.g., 'users').
        created_at: When the entry was written.
        actor_id: Acting user, None for system-initiated actions.
        entity_id: Affected record, None for system-wide actions.
        diff: ``{"oldValues": {...}, "newValues": {...}}`` (either key optional).
        id: Sequence number assigned by the store.
        checksum: Hash of this entry's content and the previous checksum.
        previous_hash: Checksum of the preceding entry.
    """

    action: AuditAction
    entity: str
    created_at: datetime
    actor_id: str | None = None
    entity_id: str | None = None
    diff: dict[str, Any] = field(default_factory=dict)
    id: int | None = None
    checksum: str | None = None
    previous_hash: str | None = None
