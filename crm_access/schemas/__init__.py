"""Pydantic request/response schemas for the API."""

from crm_access.schemas.auth import (
    AuthResponse,
    AutoRefreshRequest,
    AutoRefreshResponse,
    ChangePasswordRequest,
    IdentityResponse,
    LoginRequest,
    LogoutRequest,
    MessageResponse,
    ProfileUpdateRequest,
    RefreshRequest,
    RegisterRequest,
    TokenPairResponse,
    TokenValidationResponse,
    ValidateTokenRequest,
)
from crm_access.schemas.health import (
    HealthResponse,
    ReadinessErrorResponse,
    ReadinessResponse,
)
from crm_access.schemas.user import UserCreateRequest, UserListResponse, UserResponse

__all__ = [
    "AuthResponse",
    "AutoRefreshRequest",
    "AutoRefreshResponse",
    "ChangePasswordRequest",
    "HealthResponse",
    "IdentityResponse",
    "LoginRequest",
    "LogoutRequest",
    "MessageResponse",
    "ProfileUpdateRequest",
    "ReadinessErrorResponse",
    "ReadinessResponse",
    "RefreshRequest",
    "RegisterRequest",
    "TokenPairResponse",
    "TokenValidationResponse",
    "UserCreateRequest",
    "UserListResponse",
    "UserResponse",
]
