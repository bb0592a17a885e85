"""DTOs for token and authentication use cases."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from crm_access.domain.entities import User
from crm_access.domain.enums import Role, normalize_role
from crm_access.shared.enums import TokenType


@dataclass(frozen=True)
class TokenClaims:
    """Verified JWT claims (access or refresh)."""

    user_id: str
    email: str
    role: Role
    tenant_id: str
    token_type: TokenType = TokenType.ACCESS
    jti: str | None = None
    issued_at: int | None = None
    expires_at: int | None = None

    @classmethod
    def for_user(cls, user: User) -> TokenClaims:
        return cls(
            user_id=user.user_id,
            email=user.email,
            role=user.role,
            tenant_id=user.tenant_id,
        )

    def to_payload(self) -> dict[str, Any]:
        """Identity claims as they appear in the JWT (camelCase)."""
        return {
            "userId": self.user_id,
            "email": self.email,
            "role": self.role.value,
            "tenantId": self.tenant_id,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> TokenClaims:
        """Build claims from a decoded JWT payload.

        Raises:
            ValueError: A required identity claim is missing.
            ValidationException: The role claim is not a known role.
        """
        missing = [k for k in ("userId", "email", "role") if not payload.get(k)]
        if missing:
            raise ValueError(f"Token missing required claims: {', '.join(missing)}")
        raw_type = payload.get("type") or TokenType.ACCESS.value
        try:
            token_type = TokenType(raw_type)
        except ValueError:
            raise ValueError(f"Unknown token type: {raw_type!r}") from None
        return cls(
            user_id=str(payload["userId"]),
            email=str(payload["email"]),
            role=normalize_role(payload["role"]),
            tenant_id=str(payload.get("tenantId") or ""),
            token_type=token_type,
            jti=payload.get("jti"),
            issued_at=payload.get("iat"),
            expires_at=payload.get("exp"),
        )


@dataclass(frozen=True)
class TokenPair:
    """Access + refresh token with expiries in epoch milliseconds."""

    access_token: str
    refresh_token: str
    access_token_expiry: int
    refresh_token_expiry: int


@dataclass(frozen=True)
class TokenInspection:
    """Structural (decode-only) view of a token; never authorizes anything."""

    valid: bool
    expired: bool
    near_expiry: bool
    payload: dict[str, Any] | None = None


@dataclass(frozen=True)
class IdentityContext:
    """Verified caller attached to each authenticated request."""

    user_id: str
    email: str
    role: Role
    tenant_id: str
    first_name: str = ""
    last_name: str = ""
    token_expires_at: int | None = None
    near_expiry: bool = False
    from_token_claims: bool = False

    @classmethod
    def from_user(
        cls, user: User, *, token_expires_at: int | None, near_expiry: bool
    ) -> IdentityContext:
        return cls(
            user_id=user.user_id,
            email=user.email,
            role=user.role,
            tenant_id=user.tenant_id,
            first_name=user.first_name,
            last_name=user.last_name,
            token_expires_at=token_expires_at,
            near_expiry=near_expiry,
        )

    @classmethod
    def from_claims(cls, claims: TokenClaims, *, near_expiry: bool) -> IdentityContext:
        """Degraded identity built from token claims alone (store unreachable)."""
        return cls(
            user_id=claims.user_id,
            email=claims.email,
            role=claims.role,
            tenant_id=claims.tenant_id,
            token_expires_at=claims.expires_at * 1000 if claims.expires_at else None,
            near_expiry=near_expiry,
            from_token_claims=True,
        )


@dataclass(frozen=True)
class AuthResult:
    """Result of register/login/refresh: the user and a fresh token pair."""

    user: User
    tokens: TokenPair


@dataclass(frozen=True)
class RegisterCommand:
    email: str
    password: str
    first_name: str
    last_name: str
    role: Role
    phone_number: str | None = None


@dataclass(frozen=True)
class ProfileUpdate:
    first_name: str | None = None
    last_name: str | None = None
    phone_number: str | None = None
    password: str | None = None
    current_password: str | None = None
