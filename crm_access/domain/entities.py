"""Domain entities for the two records the core owns: users and refresh tokens.

Entities are immutable; updates go through dataclasses.replace and a full
overwrite in the store. Record (de)serialization lives here so every store
backend shares one field layout and one role normalization point.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from crm_access.domain.enums import Role, normalize_role
from crm_access.shared.utils.datetime import ensure_utc, utc_now


@dataclass(frozen=True)
class User:
    """Identity record. Primary key is email; user_id is the secondary key."""

    user_id: str
    email: str
    role: Role
    tenant_id: str
    hashed_password: str = field(repr=False)
    first_name: str = ""
    last_name: str = ""
    phone_number: str | None = None
    reporting_to: str | None = None
    created_by: str | None = None
    is_deleted: bool = False
    deleted_by: str | None = None
    deleted_at: datetime | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def is_active(self) -> bool:
        return not self.is_deleted

    def soft_deleted(self, by_user_id: str, at: datetime | None = None) -> User:
        """Return a tombstoned copy of this user."""
        when = at or utc_now()
        return replace(
            self, is_deleted=True, deleted_by=by_user_id, deleted_at=when, updated_at=when
        )

    def to_record(self) -> dict[str, Any]:
        """Serialize for the store (snake_case field names)."""
        return {
            "user_id": self.user_id,
            "email": self.email,
            "role": self.role.value,
            "tenant_id": self.tenant_id,
            "hashed_password": self.hashed_password,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "phone_number": self.phone_number,
            "reporting_to": self.reporting_to,
            "created_by": self.created_by,
            "is_deleted": self.is_deleted,
            "deleted_by": self.deleted_by,
            "deleted_at": self.deleted_at,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> User:
        """Build a User from a stored record, normalizing legacy role strings."""
        return cls(
            user_id=data["user_id"],
            email=data["email"],
            role=normalize_role(data.get("role") or Role.SALES_REP.value),
            tenant_id=data.get("tenant_id") or "",
            hashed_password=data.get("hashed_password") or "",
            first_name=data.get("first_name") or "",
            last_name=data.get("last_name") or "",
            phone_number=data.get("phone_number"),
            reporting_to=data.get("reporting_to"),
            created_by=data.get("created_by"),
            is_deleted=bool(data.get("is_deleted", False)),
            deleted_by=data.get("deleted_by"),
            deleted_at=ensure_utc(data.get("deleted_at")),
            created_at=ensure_utc(data.get("created_at")) or utc_now(),
            updated_at=ensure_utc(data.get("updated_at")) or utc_now(),
        )


@dataclass(frozen=True)
class RefreshToken:
    """Revocable refresh token record, keyed by jti."""

    jti: str
    user_id: str
    token: str = field(repr=False)
    expires_at: datetime
    created_at: datetime = field(default_factory=utc_now)
    last_used: datetime | None = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now

    def to_record(self) -> dict[str, Any]:
        return {
            "jti": self.jti,
            "user_id": self.user_id,
            "token": self.token,
            "expires_at": self.expires_at,
            "created_at": self.created_at,
            "last_used": self.last_used,
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> RefreshToken:
        return cls(
            jti=data["jti"],
            user_id=data["user_id"],
            token=data.get("token") or "",
            expires_at=ensure_utc(data["expires_at"]),
            created_at=ensure_utc(data.get("created_at")) or utc_now(),
            last_used=ensure_utc(data.get("last_used")),
        )
