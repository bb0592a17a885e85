"""Presentation-layer dependencies: services from app.state and the auth gate."""

from crm_access.api.v1.dependencies.auth import (
    IdentityDep,
    get_identity,
    require_permission,
)
from crm_access.api.v1.dependencies.services import (
    DepsDep,
    get_auth_service,
    get_deps,
    get_token_service,
    get_user_admin_service,
)

__all__ = [
    "DepsDep",
    "IdentityDep",
    "get_auth_service",
    "get_deps",
    "get_identity",
    "get_token_service",
    "get_user_admin_service",
    "require_permission",
]
