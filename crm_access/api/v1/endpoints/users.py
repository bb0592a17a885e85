"""Users API: admin user creation, soft delete, manager and report listings.

Creation and deletion rules live in UserAdminService; routes only translate
between schemas and the service.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from crm_access.api.v1.dependencies import (
    IdentityDep,
    get_user_admin_service,
    require_permission,
)
from crm_access.application.dtos.auth import IdentityContext
from crm_access.application.dtos.user import CreateUserCommand
from crm_access.application.services.user_admin_service import UserAdminService
from crm_access.core.limiter import limit_writes
from crm_access.domain.enums import Action, ResourceType
from crm_access.schemas.auth import MessageResponse
from crm_access.schemas.user import UserCreateRequest, UserListResponse, UserResponse

router = APIRouter()

UserAdminDep = Annotated[UserAdminService, Depends(get_user_admin_service)]


@router.post("", response_model=UserResponse, status_code=201)
@limit_writes
async def create_user(
    request: Request,
    body: UserCreateRequest,
    identity: Annotated[
        IdentityContext, Depends(require_permission(Action.CREATE, ResourceType.USER))
    ],
    users: UserAdminDep,
):
    """Create a user one level below the caller (SUPER_ADMIN -> ADMIN -> sales roles)."""
    user = await users.create_user(
        identity,
        CreateUserCommand(
            email=body.email,
            password=body.password,
            first_name=body.first_name,
            last_name=body.last_name,
            role=body.role,
            phone_number=body.phone_number,
            reporting_to=body.reporting_to,
        ),
    )
    return UserResponse.from_entity(user)


@router.put("/{user_id}/soft-delete", response_model=MessageResponse)
@limit_writes
async def soft_delete_user(
    request: Request,
    user_id: str,
    identity: IdentityDep,
    users: UserAdminDep,
):
    """Mark the user deleted and revoke their sessions. The record is kept."""
    await users.soft_delete(identity, user_id)
    return MessageResponse(message="User deleted")


@router.get("/managers", response_model=UserListResponse)
async def list_managers(identity: IdentityDep, users: UserAdminDep):
    """Active sales managers of the caller's tenant."""
    return UserListResponse.from_entities(await users.list_managers(identity))


@router.get("/tenant-users", response_model=UserListResponse)
async def list_tenant_users(identity: IdentityDep, users: UserAdminDep):
    return UserListResponse.from_entities(await users.list_tenant_users(identity))


@router.get("/{user_id}/reports", response_model=UserListResponse)
async def list_reports(user_id: str, identity: IdentityDep, users: UserAdminDep):
    """Direct reports of a manager (one level only)."""
    return UserListResponse.from_entities(await users.get_reports(identity, user_id))
