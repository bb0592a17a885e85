"""Domain layer: entities, enums, permissions, resources and exceptions.

No dependencies on infrastructure or presentation. Used by application
and infrastructure layers.
"""

from crm_access.domain.entities import RefreshToken, User
from crm_access.domain.enums import Action, ResourceType, Role, normalize_role
from crm_access.domain.exceptions import (
    AccountDisabledException,
    AuthenticationException,
    AuthorizationException,
    CrmAccessException,
    InvalidCredentialsException,
    InvalidTokenException,
    ResourceNotFoundException,
    StoreTableMissingException,
    StoreUnavailableException,
    TokenRevokedException,
    UserAlreadyExistsException,
    ValidationException,
)
from crm_access.domain.permissions import PermissionMatrix, build_default_matrix
from crm_access.domain.resources import (
    AccessFilter,
    AccessFilterKind,
    Resource,
    resource_from_mapping,
)

__all__ = [
    # Entities
    "RefreshToken",
    "User",
    # Enums
    "Action",
    "ResourceType",
    "Role",
    "normalize_role",
    # Permissions and resources
    "AccessFilter",
    "AccessFilterKind",
    "PermissionMatrix",
    "Resource",
    "build_default_matrix",
    "resource_from_mapping",
    # Exceptions
    "AccountDisabledException",
    "AuthenticationException",
    "AuthorizationException",
    "CrmAccessException",
    "InvalidCredentialsException",
    "InvalidTokenException",
    "ResourceNotFoundException",
    "StoreTableMissingException",
    "StoreUnavailableException",
    "TokenRevokedException",
    "UserAlreadyExistsException",
    "ValidationException",
]
