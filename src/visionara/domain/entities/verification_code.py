"""Verification code entity.

A single-use, time-boxed secret that authorizes a password change. Only the
hash is kept; the plaintext is handed back once for delivery.
"""

import secrets
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from visionara.infrastructure.auth.code_hasher import hash_code

CODE_MIN = 100000
CODE_MAX = 999999


def generate_plaintext_code() -> str:
    """Return a uniformly random 6-digit code in 100000..999999."""
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


@dataclass
class VerificationCode:
    """Verification code entity.

    Attributes:
        user_id: Owner of the code.
        code_hash: Argon2id hash of the plaintext code.
        expires_at: When the code stops being usable.
        created_at: When the code was issued.
        id: Unique identifier (UUID string).
        used_at: When the code was consumed or invalidated (None while live).
        failed_attempts: Wrong guesses made while this code was live.
    """

    user_id: str
    code_hash: str
    expires_at: datetime
    created_at: datetime
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    used_at: datetime | None = None
    failed_attempts: int = 0

    @classmethod
    def generate(
        cls, user_id: str, now: datetime, ttl: timedelta
    ) -> tuple["VerificationCode", str]:
        """Generate a new code and its entity.

        Args:
            user_id: The owning user's ID.
            now: Issuance time.
            ttl: Lifetime of the code.

        Returns:
            A tuple of (VerificationCode entity, plaintext code).
        """
        plaintext = generate_plaintext_code()
        entity = cls(
            user_id=user_id,
            code_hash=hash_code(plaintext),
            expires_at=now + ttl,
            created_at=now,
        )
        return entity, plaintext

    def is_usable(self, now: datetime) -> bool:
        """A code is usable only while unused and strictly before expiry."""
        return self.used_at is None and now < self.expires_at
