"""Permission engine: static matrix plus ownership rules over the reporting hierarchy."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from crm_access.domain.enums import Action, ResourceType, Role, normalize_role
from crm_access.domain.exceptions import AuthorizationException
from crm_access.domain.resources import AccessFilter, Resource

if TYPE_CHECKING:
    from crm_access.application.interfaces.services import ISubject
    from crm_access.application.services.hierarchy_resolver import HierarchyResolver
    from crm_access.domain.permissions import PermissionMatrix

logger = logging.getLogger(__name__)


class PermissionEngine:
    """Decides whether a subject may perform an action on a resource or type.

    Type-only checks consult the matrix alone. Instance checks additionally
    apply ownership: SUPER_ADMIN always, ADMIN within its tenant,
    SALES_MANAGER on its own records and its direct reports', SALES_REP on
    its own records.
    """

    def __init__(self, matrix: PermissionMatrix, hierarchy: HierarchyResolver) -> None:
        self.matrix = matrix
        self.hierarchy = hierarchy

    async def check_permission(
        self,
        subject: ISubject,
        action: Action | str,
        target: Resource | ResourceType | str,
    ) -> bool:
        """Return True if subject may perform action on target.

        Args:
            subject: Caller (user_id, role, tenant_id).
            action: view, edit, delete or create.
            target: A ResourceType for a type-level check, or a Resource for
                an instance check.
        """
        role = normalize_role(subject.role)
        action = Action(action)
        if isinstance(target, Resource):
            resource_type = target.resource_type
        else:
            resource_type = ResourceType(target)

        if not self.matrix.allows(role, action, resource_type):
            logger.debug(
                "Matrix denies %s %s on %s", role.value, action.value, resource_type.value
            )
            return False
        if not isinstance(target, Resource):
            return True

        if role is Role.SUPER_ADMIN:
            return True
        if role is Role.ADMIN:
            return target.tenant_id == subject.tenant_id
        if target.created_by == subject.user_id:
            return True
        if role is Role.SALES_MANAGER:
            report_ids = await self.hierarchy.get_direct_report_ids(
                subject.user_id, subject.tenant_id
            )
            return target.created_by in report_ids
        return False

    async def require_permission(
        self,
        subject: ISubject,
        action: Action | str,
        target: Resource | ResourceType | str,
    ) -> None:
        """Raise AuthorizationException if the check fails."""
        if not await self.check_permission(subject, action, target):
            resource_type = (
                target.resource_type if isinstance(target, Resource) else ResourceType(target)
            )
            logger.warning(
                "Permission denied: user=%s action=%s resource=%s",
                subject.user_id,
                Action(action).value,
                resource_type.value,
            )
            raise AuthorizationException(
                resource=resource_type.value, action=Action(action).value
            )

    async def can_create(self, subject: ISubject, resource_type: ResourceType | str) -> bool:
        return await self.check_permission(subject, Action.CREATE, resource_type)

    async def can_view(self, subject: ISubject, resource: Resource) -> bool:
        return await self.check_permission(subject, Action.VIEW, resource)

    async def can_edit(self, subject: ISubject, resource: Resource) -> bool:
        return await self.check_permission(subject, Action.EDIT, resource)

    async def can_delete(self, subject: ISubject, resource: Resource) -> bool:
        return await self.check_permission(subject, Action.DELETE, resource)

    async def build_access_filter(
        self, subject: ISubject, resource_type: ResourceType | str
    ) -> AccessFilter:
        """Row filter for listing resource_type as subject (view semantics)."""
        role = normalize_role(subject.role)
        resource_type = ResourceType(resource_type)
        if not self.matrix.allows(role, Action.VIEW, resource_type):
            return AccessFilter.deny_all()
        if role is Role.SUPER_ADMIN:
            return AccessFilter.unrestricted()
        if role is Role.ADMIN:
            return AccessFilter.unrestricted(tenant_id=subject.tenant_id)
        owners = {subject.user_id}
        if role is Role.SALES_MANAGER:
            owners |= await self.hierarchy.get_direct_report_ids(
                subject.user_id, subject.tenant_id
            )
        return AccessFilter.for_owners(owners)
