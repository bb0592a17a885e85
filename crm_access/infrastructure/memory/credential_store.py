"""In-process credential store for development and tests.

Same contract as the Firestore store: users keyed by lowercased email with
a user_id index, refresh tokens keyed by jti. Records are kept in their
serialized form so reads return fresh entities, like a real backend.
Data is lost on restart.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from crm_access.domain.entities import RefreshToken, User
from crm_access.domain.exceptions import (
    StoreTableMissingException,
    UserAlreadyExistsException,
)

logger = logging.getLogger(__name__)


class InMemoryCredentialStore:
    """Dict-backed implementation of ICredentialStore."""

    def __init__(self, *, refresh_tokens_collection: str = "refresh_tokens") -> None:
        self._users: dict[str, dict[str, Any]] = {}
        self._user_ids: dict[str, str] = {}
        self._refresh_tokens: dict[str, dict[str, Any]] | None = {}
        self._refresh_tokens_collection = refresh_tokens_collection

    @staticmethod
    def _key(email: str) -> str:
        return email.strip().lower()

    def drop_refresh_tokens(self) -> None:
        """Simulate a missing refresh token table until ensure_ready runs."""
        self._refresh_tokens = None

    def _tokens(self) -> dict[str, dict[str, Any]]:
        if self._refresh_tokens is None:
            raise StoreTableMissingException(self._refresh_tokens_collection)
        return self._refresh_tokens

    async def get_user_by_email(self, email: str) -> User | None:
        record = self._users.get(self._key(email))
        return User.from_record(record) if record else None

    async def get_user_by_id(self, user_id: str) -> User | None:
        email = self._user_ids.get(user_id)
        if email is None:
            return None
        return await self.get_user_by_email(email)

    async def put_user(self, user: User, *, create: bool = False) -> None:
        key = self._key(user.email)
        if create and key in self._users:
            raise UserAlreadyExistsException()
        self._users[key] = user.to_record()
        self._user_ids[user.user_id] = key

    async def list_users_by_manager(self, manager_id: str, tenant_id: str) -> list[User]:
        return [
            User.from_record(r)
            for r in self._users.values()
            if r.get("reporting_to") == manager_id and r.get("tenant_id") == tenant_id
        ]

    async def list_users_by_tenant(self, tenant_id: str) -> list[User]:
        return [
            User.from_record(r)
            for r in self._users.values()
            if r.get("tenant_id") == tenant_id
        ]

    async def get_refresh_token(self, jti: str) -> RefreshToken | None:
        if self._refresh_tokens is None:
            return None
        record = self._refresh_tokens.get(jti)
        return RefreshToken.from_record(record) if record else None

    async def put_refresh_token(self, token: RefreshToken) -> None:
        self._tokens()[token.jti] = token.to_record()

    async def touch_refresh_token(self, jti: str, when: datetime) -> bool:
        record = (self._refresh_tokens or {}).get(jti)
        if record is None:
            return False
        record["last_used"] = when
        return True

    async def delete_refresh_token(self, jti: str) -> None:
        if self._refresh_tokens is not None:
            self._refresh_tokens.pop(jti, None)

    async def list_refresh_tokens_by_user(self, user_id: str) -> list[RefreshToken]:
        if self._refresh_tokens is None:
            return []
        return [
            RefreshToken.from_record(r)
            for r in self._refresh_tokens.values()
            if r["user_id"] == user_id
        ]

    async def list_expired_refresh_tokens(self, now: datetime) -> list[RefreshToken]:
        if self._refresh_tokens is None:
            return []
        return [
            RefreshToken.from_record(r)
            for r in self._refresh_tokens.values()
            if r["expires_at"] < now
        ]

    async def ensure_ready(self) -> None:
        if self._refresh_tokens is None:
            logger.info("Creating collection %s", self._refresh_tokens_collection)
            self._refresh_tokens = {}

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        return None
