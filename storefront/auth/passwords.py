"""
Password hashing.

bcrypt with a per-hash random salt. The cost factor comes from settings
and is fixed for the life of the process.
"""

from __future__ import annotations

import bcrypt

# bcrypt ignores everything past this many bytes
_BCRYPT_MAX_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


class PasswordHasher:
    """Salted one-way hashing. CPU-bound: call off the event loop."""

    def __init__(self, rounds: int = 10):
        self.rounds = rounds

    def hash(self, password: str) -> str:
        """Hash a password; identical inputs give different outputs."""
        if not password:
            raise ValueError("password_blank")
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(_encode(password), salt).decode("ascii")

    def verify(self, password: str, password_hash: str | None) -> bool:
        """Verify a password against its hash. Never raises."""
        if not password or not password_hash:
            return False
        try:
            return bcrypt.checkpw(_encode(password), password_hash.encode("utf-8"))
        except (ValueError, TypeError):
            return False
