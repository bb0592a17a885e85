"""Repository interfaces (ports) for the application layer.

Protocols define contracts that infrastructure implementations must fulfill (DIP).
All types reference domain entities only; no infrastructure imports.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from crm_access.domain.entities import RefreshToken, User


# Credential store interface
class ICredentialStore(Protocol):
    """Protocol for the store that owns users and refresh tokens (DIP).

    Implementations raise StoreUnavailableException when the backend cannot
    be reached and StoreTableMissingException when a write targets a
    collection that does not exist.
    """

    async def get_user_by_email(self, email: str) -> User | None:
        """Return user by email (case-insensitive), deleted users included."""

    async def get_user_by_id(self, user_id: str) -> User | None:
        """Return user by user_id, deleted users included."""

    async def put_user(self, user: User, *, create: bool = False) -> None:
        """Write the full user record.

        With create=True, raise UserAlreadyExistsException if the email is taken.
        """

    async def list_users_by_manager(self, manager_id: str, tenant_id: str) -> list[User]:
        """Return users in tenant whose reporting_to is manager_id (deleted included)."""

    async def list_users_by_tenant(self, tenant_id: str) -> list[User]:
        """Return all users in tenant (deleted included)."""

    async def get_refresh_token(self, jti: str) -> RefreshToken | None:
        """Return the refresh token record or None (revoked or never issued)."""

    async def put_refresh_token(self, token: RefreshToken) -> None:
        """Create or overwrite a refresh token record."""

    async def touch_refresh_token(self, jti: str, when: datetime) -> bool:
        """Set last_used on an existing record only. False when the jti is gone."""

    async def delete_refresh_token(self, jti: str) -> None:
        """Delete a refresh token record. Deleting a missing jti is a no-op."""

    async def list_refresh_tokens_by_user(self, user_id: str) -> list[RefreshToken]:
        """Return all refresh token records for user."""

    async def list_expired_refresh_tokens(self, now: datetime) -> list[RefreshToken]:
        """Return refresh token records with expires_at before now."""

    async def ensure_ready(self) -> None:
        """Create missing collections/tables where the backend needs it."""

    async def ping(self) -> bool:
        """Return True if the backend answers a cheap read."""

    async def aclose(self) -> None:
        """Release connections."""
