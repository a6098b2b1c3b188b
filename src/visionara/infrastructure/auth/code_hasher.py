"""Verification code hashing using Argon2.

Codes are hashed with Argon2id, which salts every hash. The same plaintext
therefore never produces the same stored value, and lookups verify the
supplied code against each live candidate instead of comparing hashes.
"""

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

# Codes live for minutes and are throttled, so a lighter cost than the
# library's password defaults keeps verification of several candidates fast.
_hasher = PasswordHasher(time_cost=2, memory_cost=19456, parallelism=1)


def hash_code(code: str) -> str:
    """Hash a plaintext verification code.

    Args:
        code: The plaintext code.

    Returns:
        The Argon2id hash string.

    Example:
        >>> hash_code("123456").startswith("$argon2id$")
        True
    """
    return _hasher.hash(code)


def verify_code(code: str, hashed: str) -> bool:
    """Verify a plaintext code against a stored hash in constant time.

    Args:
        code: The plaintext code supplied by the user.
        hashed: The stored hash.

    Returns:
        True if the code matches, False otherwise (including malformed hashes).
    """
    try:
        return _hasher.verify(hashed, code)
    except (VerificationError, InvalidHashError):
        return False
