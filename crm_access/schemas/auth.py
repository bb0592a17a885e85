"""Auth API schemas."""

from typing import Any

from pydantic import EmailStr, Field, field_validator, model_validator

from crm_access.application.dtos.auth import IdentityContext, TokenInspection, TokenPair
from crm_access.domain.enums import Role
from crm_access.schemas.base import CamelModel, parse_role
from crm_access.schemas.user import UserResponse


class RegisterRequest(CamelModel):
    """Request body for public self-registration (sales roles only)."""

    email: EmailStr
    password: str = Field(..., min_length=8, description="Password (min 8 characters)")
    first_name: str = Field(..., min_length=1, max_length=128)
    last_name: str = Field(..., min_length=1, max_length=128)
    role: Role = Role.SALES_REP
    phone_number: str | None = Field(default=None, max_length=32)

    @field_validator("role", mode="before")
    @classmethod
    def canonical_role(cls, value: object) -> Role:
        return parse_role(value)


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RefreshRequest(CamelModel):
    """Optional body for /auth/refresh; the cookie takes precedence."""

    refresh_token: str | None = None


class LogoutRequest(CamelModel):
    """Optional body for /auth/logout. userId asks to end every session of that user."""

    refresh_token: str | None = None
    user_id: str | None = None


class AutoRefreshRequest(CamelModel):
    access_token: str = Field(..., min_length=1)
    refresh_token: str = Field(..., min_length=1)


class ValidateTokenRequest(CamelModel):
    access_token: str = Field(..., min_length=1)


class ProfileUpdateRequest(CamelModel):
    """Partial profile update. Changing the password requires currentPassword."""

    first_name: str | None = Field(default=None, min_length=1, max_length=128)
    last_name: str | None = Field(default=None, min_length=1, max_length=128)
    phone_number: str | None = Field(default=None, max_length=32)
    password: str | None = Field(default=None, min_length=8)
    current_password: str | None = None

    @model_validator(mode="after")
    def password_needs_current(self) -> "ProfileUpdateRequest":
        if self.password and not self.current_password:
            raise ValueError("currentPassword is required to change the password")
        return self


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8)


class AuthResponse(CamelModel):
    """Access token plus user; the refresh token travels in the cookie."""

    access_token: str
    access_token_expiry: int = Field(..., description="Epoch milliseconds")
    user: UserResponse


class TokenPairResponse(CamelModel):
    access_token: str
    refresh_token: str
    access_token_expiry: int
    refresh_token_expiry: int

    @classmethod
    def from_pair(cls, pair: TokenPair) -> "TokenPairResponse":
        return cls(
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            access_token_expiry=pair.access_token_expiry,
            refresh_token_expiry=pair.refresh_token_expiry,
        )


class AutoRefreshResponse(CamelModel):
    should_refresh: bool
    tokens: TokenPairResponse | None = None


class TokenValidationResponse(CamelModel):
    valid: bool
    expired: bool
    near_expiry: bool
    payload: dict[str, Any] | None = None

    @classmethod
    def from_inspection(cls, inspection: TokenInspection) -> "TokenValidationResponse":
        return cls(
            valid=inspection.valid,
            expired=inspection.expired,
            near_expiry=inspection.near_expiry,
            payload=inspection.payload,
        )


class IdentityResponse(CamelModel):
    """Identity attached by the authentication gate (GET /auth/me)."""

    user_id: str
    email: str
    role: Role
    tenant_id: str
    first_name: str = ""
    last_name: str = ""
    token_expires_at: int | None = None
    near_expiry: bool = False

    @classmethod
    def from_identity(cls, identity: IdentityContext) -> "IdentityResponse":
        return cls(
            user_id=identity.user_id,
            email=identity.email,
            role=identity.role,
            tenant_id=identity.tenant_id,
            first_name=identity.first_name,
            last_name=identity.last_name,
            token_expires_at=identity.token_expires_at,
            near_expiry=identity.near_expiry,
        )


class MessageResponse(CamelModel):
    message: str
