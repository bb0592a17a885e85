"""Firestore implementation of ICredentialStore.

Users are stored with the lowercased email as document id (so "email is
unique" is enforced by createDocument) and looked up by user_id through a
field query. Refresh tokens are stored under their jti.
"""

from __future__ import annotations

import logging
from datetime import datetime

from crm_access.domain.entities import RefreshToken, User
from crm_access.domain.exceptions import (
    StoreTableMissingException,
    UserAlreadyExistsException,
)
from crm_access.infrastructure.firebase._rest_client import (
    CollectionMissingError,
    DocumentExistsError,
    FirestoreRESTClient,
    equals,
    less_than,
)

logger = logging.getLogger(__name__)

HEALTHCHECK_DOCUMENT = "__healthcheck__"


class FirestoreCredentialStore:
    """Credential store backed by two Firestore collections."""

    def __init__(
        self,
        db: FirestoreRESTClient,
        *,
        users_collection: str = "users",
        refresh_tokens_collection: str = "refresh_tokens",
    ) -> None:
        self._db = db
        self.users_collection = users_collection
        self.tokens_collection = refresh_tokens_collection

    @staticmethod
    def _doc_id(email: str) -> str:
        return email.strip().lower()

    async def get_user_by_email(self, email: str) -> User | None:
        record = await self._db.get_document(self.users_collection, self._doc_id(email))
        return User.from_record(record) if record else None

    async def get_user_by_id(self, user_id: str) -> User | None:
        records = await self._db.run_query(
            self.users_collection, equals("user_id", user_id), limit=1
        )
        return User.from_record(records[0]) if records else None

    async def put_user(self, user: User, *, create: bool = False) -> None:
        doc_id = self._doc_id(user.email)
        try:
            if create:
                await self._db.create_document(self.users_collection, doc_id, user.to_record())
            else:
                await self._db.set_document(self.users_collection, doc_id, user.to_record())
        except DocumentExistsError:
            raise UserAlreadyExistsException() from None
        except CollectionMissingError as e:
            raise StoreTableMissingException(e.collection) from None

    async def list_users_by_manager(self, manager_id: str, tenant_id: str) -> list[User]:
        records = await self._db.run_query(
            self.users_collection,
            equals("reporting_to", manager_id),
            equals("tenant_id", tenant_id),
        )
        return [User.from_record(r) for r in records]

    async def list_users_by_tenant(self, tenant_id: str) -> list[User]:
        records = await self._db.run_query(self.users_collection, equals("tenant_id", tenant_id))
        return [User.from_record(r) for r in records]

    async def get_refresh_token(self, jti: str) -> RefreshToken | None:
        record = await self._db.get_document(self.tokens_collection, jti)
        return RefreshToken.from_record(record) if record else None

    async def put_refresh_token(self, token: RefreshToken) -> None:
        try:
            await self._db.set_document(self.tokens_collection, token.jti, token.to_record())
        except CollectionMissingError as e:
            raise StoreTableMissingException(e.collection) from None

    async def touch_refresh_token(self, jti: str, when: datetime) -> bool:
        return await self._db.update_fields(self.tokens_collection, jti, {"last_used": when})

    async def delete_refresh_token(self, jti: str) -> None:
        await self._db.delete_document(self.tokens_collection, jti)

    async def list_refresh_tokens_by_user(self, user_id: str) -> list[RefreshToken]:
        records = await self._db.run_query(self.tokens_collection, equals("user_id", user_id))
        return [RefreshToken.from_record(r) for r in records]

    async def list_expired_refresh_tokens(self, now: datetime) -> list[RefreshToken]:
        records = await self._db.run_query(self.tokens_collection, less_than("expires_at", now))
        return [RefreshToken.from_record(r) for r in records]

    async def ensure_ready(self) -> None:
        # Firestore creates collections on first write; only connectivity matters.
        await self.ping()
        logger.info(
            "Firestore collections ready: %s, %s",
            self.users_collection,
            self.tokens_collection,
        )

    async def ping(self) -> bool:
        await self._db.get_document(self.users_collection, HEALTHCHECK_DOCUMENT)
        return True

    async def aclose(self) -> None:
        await self._db.aclose()
