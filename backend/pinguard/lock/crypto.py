"""
PIN hashing with Argon2id.

Only the hash is ever persisted; verification goes through argon2's
constant-time check.
"""

from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

# Prefix shared by every encoded argon2 hash we produce or accept
ARGON2_PREFIXES = ("$argon2id$", "$argon2i$", "$argon2d$")


class PinHasher:
    """Hashes and verifies PINs. Defaults follow argon2-cffi's recommended profile."""

    def __init__(self, hasher: Optional[PasswordHasher] = None):
        self._hasher = hasher or PasswordHasher()

    @classmethod
    def with_params(
        cls,
        time_cost: int,
        memory_cost: int,
        parallelism: int = 1,
    ) -> "PinHasher":
        """Build a hasher with explicit argon2 cost parameters (memory_cost in KiB)."""
        return cls(PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
        ))

    def hash(self, pin: str) -> str:
        """Return the encoded argon2 hash for a PIN."""
        return self._hasher.hash(pin)

    def verify(self, stored_hash: Optional[str], candidate: str) -> bool:
        """
        Check a candidate PIN against a stored hash.

        Returns False for a mismatch, a missing hash, or a hash argon2
        cannot parse. Never raises for those cases.
        """
        if not stored_hash:
            return False
        try:
            return self._hasher.verify(stored_hash, candidate)
        except (VerificationError, InvalidHashError):
            return False

    @staticmethod
    def is_hash(value: Optional[str]) -> bool:
        """True if the value looks like an encoded argon2 hash rather than a raw PIN."""
        return bool(value) and value.startswith(ARGON2_PREFIXES)
