"""Password hashing (bcrypt with SHA-256 pre-hash).

Bcrypt truncates inputs at 72 bytes; pre-hashing with SHA-256 yields a
fixed-length input so long passwords are not silently truncated. Hashing is
CPU-bound, so the async hasher runs it in a worker thread.
"""

import asyncio
import base64
import hashlib

import bcrypt

DEFAULT_ROUNDS = 12


def _prehash(password: str) -> bytes:
    """SHA-256 pre-hash to avoid bcrypt's 72-byte truncation."""
    return base64.b64encode(hashlib.sha256(password.encode("utf-8")).digest())


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Return True if plain_password matches hashed_password."""
    try:
        result = bcrypt.checkpw(
            _prehash(plain_password),
            hashed_password.encode("utf-8"),
        )
        return bool(result)
    except (ValueError, TypeError):
        return False


def get_password_hash(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Return bcrypt hash of password (SHA-256 pre-hashed before bcrypt)."""
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(_prehash(password), salt)
    return hashed.decode("utf-8")


class BcryptPasswordHasher:
    """IPasswordHasher implementation; runs bcrypt off the event loop."""

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        self.rounds = rounds
        self._dummy_hash: str | None = None

    async def hash(self, password: str) -> str:
        return await asyncio.to_thread(get_password_hash, password, self.rounds)

    async def verify(self, password: str, hashed_password: str) -> bool:
        return await asyncio.to_thread(verify_password, password, hashed_password)

    async def verify_dummy(self, password: str) -> None:
        """Spend the same time as a real check when the email is unknown."""
        if self._dummy_hash is None:
            self._dummy_hash = await self.hash("dummy-password-for-timing")
        await self.verify(password, self._dummy_hash)
