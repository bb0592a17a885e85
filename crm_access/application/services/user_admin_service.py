"""Admin user management: creation rules, soft delete, manager and report listings."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from crm_access.domain.entities import User
from crm_access.domain.enums import Action, ResourceType, Role, normalize_role
from crm_access.domain.exceptions import AuthorizationException, ResourceNotFoundException
from crm_access.domain.resources import UserRecord
from crm_access.shared.utils.generators import generate_cuid, generate_tenant_id

if TYPE_CHECKING:
    from crm_access.application.dtos.user import CreateUserCommand
    from crm_access.application.interfaces.repositories import ICredentialStore
    from crm_access.application.interfaces.services import IPasswordHasher, ISubject
    from crm_access.application.services.hierarchy_resolver import HierarchyResolver
    from crm_access.application.services.permission_engine import PermissionEngine
    from crm_access.application.services.token_service import TokenService
    from crm_access.shared.utils.datetime import Clock

logger = logging.getLogger(__name__)


def _as_resource(user: User) -> UserRecord:
    return UserRecord(
        id=user.user_id,
        created_by=user.created_by or "",
        tenant_id=user.tenant_id,
    )


class UserAdminService:
    """User lifecycle operations reserved for SUPER_ADMIN and ADMIN."""

    def __init__(
        self,
        store: ICredentialStore,
        permissions: PermissionEngine,
        hierarchy: HierarchyResolver,
        tokens: TokenService,
        hasher: IPasswordHasher,
        clock: Clock,
    ) -> None:
        self.store = store
        self.permissions = permissions
        self.hierarchy = hierarchy
        self.tokens = tokens
        self.hasher = hasher
        self.clock = clock

    async def create_user(self, actor: ISubject, command: CreateUserCommand) -> User:
        """Create a user one level below the actor.

        SUPER_ADMIN creates ADMINs, each in a fresh tenant. ADMIN creates
        SALES_MANAGERs (reporting to the admin) and SALES_REPs (reporting to
        an active SALES_MANAGER of the same tenant).

        Raises:
            AuthorizationException: Actor may not create users or that role.
            ValidationException: Invalid reporting line.
            UserAlreadyExistsException: Email already registered.
        """
        await self.permissions.require_permission(actor, Action.CREATE, ResourceType.USER)
        actor_role = normalize_role(actor.role)
        role = command.role
        reporting_to: str | None = None
        if actor_role is Role.SUPER_ADMIN:
            if role is not Role.ADMIN:
                raise AuthorizationException(
                    ResourceType.USER.value,
                    Action.CREATE.value,
                    message="Super admin can only create admins",
                )
            tenant_id = generate_tenant_id()
        elif actor_role is Role.ADMIN:
            tenant_id = actor.tenant_id
            if role is Role.SALES_MANAGER:
                reporting_to = actor.user_id
            elif role is Role.SALES_REP:
                manager = await self.hierarchy.validate_reporting_line(
                    role, command.reporting_to, tenant_id
                )
                reporting_to = manager.user_id
            else:
                raise AuthorizationException(
                    ResourceType.USER.value,
                    Action.CREATE.value,
                    message="Admins can only create sales managers and sales reps",
                )
        else:
            raise AuthorizationException(ResourceType.USER.value, Action.CREATE.value)

        now = self.clock()
        user = User(
            user_id=generate_cuid(),
            email=command.email.strip().lower(),
            role=role,
            tenant_id=tenant_id,
            hashed_password=await self.hasher.hash(command.password),
            first_name=command.first_name,
            last_name=command.last_name,
            phone_number=command.phone_number or None,
            reporting_to=reporting_to,
            created_by=actor.user_id,
            created_at=now,
            updated_at=now,
        )
        await self.store.put_user(user, create=True)
        if reporting_to:
            await self.hierarchy.invalidate(reporting_to, tenant_id)
        logger.info(
            "User %s (%s) created by %s in tenant %s",
            user.user_id,
            role.value,
            actor.user_id,
            tenant_id,
        )
        return user

    async def soft_delete(self, actor: ISubject, user_id: str) -> User:
        """Tombstone a user and revoke their refresh tokens.

        Raises:
            ResourceNotFoundException: No active user with that id.
            AuthorizationException: Other tenant, protected role, or self.
        """
        target = await self.store.get_user_by_id(user_id)
        if target is None or target.is_deleted:
            raise ResourceNotFoundException("User", user_id)
        await self.permissions.require_permission(actor, Action.DELETE, _as_resource(target))
        actor_role = normalize_role(actor.role)
        if target.user_id == actor.user_id:
            raise AuthorizationException(
                ResourceType.USER.value,
                Action.DELETE.value,
                message="Cannot delete your own account",
            )
        if target.role is Role.SUPER_ADMIN or (
            actor_role is Role.ADMIN and target.role is Role.ADMIN
        ):
            raise AuthorizationException(
                ResourceType.USER.value,
                Action.DELETE.value,
                message=f"Cannot delete a user with role {target.role.value}",
            )
        deleted = target.soft_deleted(actor.user_id, self.clock())
        await self.store.put_user(deleted)
        revoked = await self.tokens.revoke_all_for_user(target.user_id)
        if target.reporting_to:
            await self.hierarchy.invalidate(target.reporting_to, target.tenant_id)
        logger.info(
            "User %s soft-deleted by %s (%d sessions revoked)",
            target.user_id,
            actor.user_id,
            revoked,
        )
        return deleted

    async def list_managers(self, actor: ISubject) -> list[User]:
        """Active SALES_MANAGERs in the actor's tenant (candidates for reportingTo)."""
        await self.permissions.require_permission(actor, Action.VIEW, ResourceType.USER)
        users = await self.store.list_users_by_tenant(actor.tenant_id)
        return [u for u in users if u.is_active and u.role is Role.SALES_MANAGER]

    async def list_tenant_users(self, actor: ISubject) -> list[User]:
        """Active users in the actor's tenant."""
        await self.permissions.require_permission(actor, Action.VIEW, ResourceType.USER)
        users = await self.store.list_users_by_tenant(actor.tenant_id)
        return [u for u in users if u.is_active]

    async def get_reports(self, actor: ISubject, manager_id: str) -> list[User]:
        """Direct reports of manager_id. Managers may list their own; admins any in tenant."""
        if manager_id != actor.user_id:
            await self.permissions.require_permission(actor, Action.VIEW, ResourceType.USER)
        manager = await self.store.get_user_by_id(manager_id)
        if manager is None or manager.is_deleted:
            raise ResourceNotFoundException("User", manager_id)
        if manager_id != actor.user_id:
            await self.permissions.require_permission(
                actor, Action.VIEW, _as_resource(manager)
            )
        return await self.hierarchy.get_direct_reports(manager_id, manager.tenant_id)
