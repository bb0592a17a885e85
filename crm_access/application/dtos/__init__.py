"""Application DTOs (no dependency on HTTP schemas or storage)."""

from crm_access.application.dtos.auth import (
    AuthResult,
    IdentityContext,
    ProfileUpdate,
    RegisterCommand,
    TokenClaims,
    TokenInspection,
    TokenPair,
)
from crm_access.application.dtos.user import CreateUserCommand

__all__ = [
    "AuthResult",
    "CreateUserCommand",
    "IdentityContext",
    "ProfileUpdate",
    "RegisterCommand",
    "TokenClaims",
    "TokenInspection",
    "TokenPair",
]
