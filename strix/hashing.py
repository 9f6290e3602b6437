"""
Password hashing with Argon2id.

Used by login flows to check submitted credentials against stored hashes.
"""

from __future__ import annotations

from argon2 import PasswordHasher as Argon2PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

__all__ = ["PasswordHasher", "hash_password", "verify_password", "get_password_hasher"]


class PasswordHasher:
    """
    Argon2id password hasher.

    Security parameters (defaults):
    - time_cost=2, memory_cost=65536 (64MB), parallelism=4

    Example output:
        $argon2id$v=19$m=65536,t=2,p=4$saltbase64$hashbase64
    """

    def __init__(
        self,
        time_cost: int = 2,
        memory_cost: int = 65536,  # KB
        parallelism: int = 4,
        hash_len: int = 32,
        salt_len: int = 16,
    ):
        self.hasher = Argon2PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            hash_len=hash_len,
            salt_len=salt_len,
        )

    def hash(self, password: str) -> str:
        return self.hasher.hash(password)

    def verify(self, password_hash: str, password: str) -> bool:
        """
        True when ``password`` matches ``password_hash``.

        Malformed or foreign hashes never match.
        """
        if not password_hash or not password_hash.startswith("$argon2"):
            return False
        try:
            return self.hasher.verify(password_hash, password)
        except (VerifyMismatchError, VerificationError, InvalidHashError):
            return False

    def check_needs_rehash(self, password_hash: str) -> bool:
        try:
            return self.hasher.check_needs_rehash(password_hash)
        except InvalidHashError:
            return True


_default_hasher: PasswordHasher | None = None


def get_password_hasher() -> PasswordHasher:
    global _default_hasher
    if _default_hasher is None:
        _default_hasher = PasswordHasher()
    return _default_hasher


def hash_password(password: str) -> str:
    return get_password_hasher().hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    return get_password_hasher().verify(password_hash, password)
