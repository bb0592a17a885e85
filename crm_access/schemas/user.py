"""User API schemas."""

from datetime import datetime

from pydantic import EmailStr, Field, field_validator

from crm_access.domain.entities import User
from crm_access.domain.enums import Role
from crm_access.schemas.base import CamelModel, parse_role


class UserResponse(CamelModel):
    """User response (no password hash)."""

    user_id: str
    email: str
    role: Role
    tenant_id: str
    first_name: str = ""
    last_name: str = ""
    phone_number: str | None = None
    reporting_to: str | None = None
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, user: User) -> "UserResponse":
        return cls(
            user_id=user.user_id,
            email=user.email,
            role=user.role,
            tenant_id=user.tenant_id,
            first_name=user.first_name,
            last_name=user.last_name,
            phone_number=user.phone_number,
            reporting_to=user.reporting_to,
            created_by=user.created_by,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class UserCreateRequest(CamelModel):
    """Request body for POST /users (admin-created user)."""

    email: EmailStr
    password: str = Field(..., min_length=8)
    first_name: str = Field(..., min_length=1, max_length=128)
    last_name: str = Field(..., min_length=1, max_length=128)
    role: Role
    phone_number: str | None = Field(default=None, max_length=32)
    reporting_to: str | None = None

    @field_validator("role", mode="before")
    @classmethod
    def canonical_role(cls, value: object) -> Role:
        return parse_role(value)


class UserListResponse(CamelModel):
    """List of users with a count."""

    users: list[UserResponse]
    count: int

    @classmethod
    def from_entities(cls, users: list[User]) -> "UserListResponse":
        return cls(users=[UserResponse.from_entity(u) for u in users], count=len(users))
