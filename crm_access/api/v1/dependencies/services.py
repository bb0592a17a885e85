"""Service dependencies (composition root).

Everything is built once by crm_access.core.bootstrap.initialize() and kept
on app.state.deps; these accessors hand the pieces to routes so endpoints
never construct stores or services themselves.
"""

from typing import Annotated

from fastapi import Depends, Request

from crm_access.application.services.auth_service import AuthService
from crm_access.application.services.token_service import TokenService
from crm_access.application.services.user_admin_service import UserAdminService
from crm_access.core.bootstrap import Dependencies


def get_deps(request: Request) -> Dependencies:
    """Dependencies built at startup (see core.lifespan)."""
    return request.app.state.deps


DepsDep = Annotated[Dependencies, Depends(get_deps)]


def get_auth_service(deps: DepsDep) -> AuthService:
    return deps.auth


def get_token_service(deps: DepsDep) -> TokenService:
    return deps.tokens


def get_user_admin_service(deps: DepsDep) -> UserAdminService:
    return deps.users
