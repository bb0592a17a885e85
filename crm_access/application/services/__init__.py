"""Application services: token issuing, hierarchy, permissions, auth and user admin."""

from crm_access.application.services.auth_service import AuthService
from crm_access.application.services.hierarchy_resolver import HierarchyResolver
from crm_access.application.services.permission_engine import PermissionEngine
from crm_access.application.services.token_service import TokenService
from crm_access.application.services.token_sweeper import TokenSweeper
from crm_access.application.services.user_admin_service import UserAdminService

__all__ = [
    "AuthService",
    "HierarchyResolver",
    "PermissionEngine",
    "TokenService",
    "TokenSweeper",
    "UserAdminService",
]
