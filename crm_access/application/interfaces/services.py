"""Service interfaces (ports) for the application layer.

Protocols define contracts for application services (DIP).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from crm_access.domain.enums import Role


# Cache service interface
class ICacheService(Protocol):
    """Minimal cache protocol for hierarchy caching (DIP)."""

    def is_available(self) -> bool:
        """Return True if cache is connected."""

    async def get(self, key: str) -> Any:
        """Return cached value or None."""

    async def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        """Store value with TTL. Returns True on success."""

    async def delete(self, key: str) -> bool:
        """Delete key. Returns True on success."""

    async def delete_pattern(self, pattern: str) -> int:
        """Delete keys matching pattern. Returns count deleted."""


# Permission subject
class ISubject(Protocol):
    """Anything the permission engine can authorize: a user or an identity context."""

    @property
    def user_id(self) -> str: ...

    @property
    def role(self) -> Role | str: ...

    @property
    def tenant_id(self) -> str: ...


# Token codec interface
class ITokenCodec(Protocol):
    """Signs and verifies JWTs. Failures raise InvalidTokenException."""

    def encode(
        self,
        claims: dict[str, Any],
        *,
        secret: str,
        issued_at: datetime,
        expires_at: datetime,
    ) -> str:
        """Sign claims, adding iat and exp."""

    def decode(self, token: str, *, secret: str, now: datetime) -> dict[str, Any]:
        """Verify signature and expiry (reason "signature" or "expired")."""

    def peek(self, token: str) -> dict[str, Any]:
        """Decode without verification (reason "malformed" on failure)."""


# Password hasher interface
class IPasswordHasher(Protocol):
    """Async password hashing."""

    async def hash(self, password: str) -> str:
        """Return a hash of password."""

    async def verify(self, password: str, hashed_password: str) -> bool:
        """Return True if password matches."""

    async def verify_dummy(self, password: str) -> None:
        """Burn one verification's worth of time (unknown-user logins)."""
