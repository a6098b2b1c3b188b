"""Audit checksum utility.

Shared by the repository when appending entries and when verifying the chain,
so both sides hash exactly the same representation.
"""

import hashlib
import json
from datetime import datetime
from typing import Any, Optional


class AuditChecksum:
    """Utility for calculating audit ledger integrity checksums."""

    @staticmethod
    def calculate(
        actor_id: Optional[str],
        action: str,
        entity: str,
        entity_id: Optional[str],
        diff: Optional[dict[str, Any]],
        created_at: datetime,
        previous_hash: Optional[str],
    ) -> str:
        """Calculate SHA-256 checksum for an audit entry.

        Args:
            actor_id: Acting user ID.
            action: Audit action value.
            entity: Affected entity name.
            entity_id: Affected record ID.
            diff: Old/new values.
            created_at: Time the entry was written.
            previous_hash: Checksum of the previous entry.

        Returns:
            SHA-256 checksum as a hexadecimal string.
        """
        # SQLite drops the offset on storage, so hash the naive wall-clock value
        if created_at.tzinfo is not None:
            created_at = created_at.replace(tzinfo=None)

        data = {
            "actor_id": actor_id,
            "action": action,
            "entity": entity,
            "entity_id": entity_id,
            "diff": diff or {},
            "created_at": created_at.isoformat(),
            "previous_hash": previous_hash,
        }

        json_str = json.dumps(data, sort_keys=True, default=str)
        return hashlib.sha256(json_str.encode("utf-8")).hexdigest()
