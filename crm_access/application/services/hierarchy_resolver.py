"""Reporting hierarchy resolver: manager -> direct reports, and reporting-line checks."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from crm_access.domain.enums import Role, normalize_role
from crm_access.domain.exceptions import ValidationException

if TYPE_CHECKING:
    from crm_access.application.interfaces.repositories import ICredentialStore
    from crm_access.application.interfaces.services import ICacheService
    from crm_access.domain.entities import User

logger = logging.getLogger(__name__)


def hierarchy_key(tenant_id: str, manager_id: str) -> str:
    """Cache key for a manager's direct-report ids."""
    return f"hierarchy:{tenant_id}:{manager_id}"


def hierarchy_tenant_pattern(tenant_id: str) -> str:
    return f"hierarchy:{tenant_id}:*"


class HierarchyResolver:
    """Single-level reporting lookups with an optional id cache."""

    def __init__(
        self,
        store: ICredentialStore,
        cache: ICacheService | None = None,
        cache_ttl: int = 60,
    ) -> None:
        self.store = store
        self.cache = cache
        self.cache_ttl = cache_ttl

    async def get_direct_reports(self, manager_id: str, tenant_id: str) -> list[User]:
        """Active users in tenant whose reporting_to is manager_id. Not transitive."""
        users = await self.store.list_users_by_manager(manager_id, tenant_id)
        return [u for u in users if u.is_active and u.tenant_id == tenant_id]

    async def get_direct_report_ids(self, manager_id: str, tenant_id: str) -> set[str]:
        """Ids of active direct reports; served from cache when available."""
        key = hierarchy_key(tenant_id, manager_id)
        if self.cache and self.cache.is_available():
            cached = await self.cache.get(key)
            if cached is not None:
                return set(cached)
        ids = {u.user_id for u in await self.get_direct_reports(manager_id, tenant_id)}
        if self.cache and self.cache.is_available():
            await self.cache.set(key, sorted(ids), ttl=self.cache_ttl)
        return ids

    async def validate_reporting_line(
        self,
        subordinate_role: Role | str,
        manager_id: str | None,
        tenant_id: str,
        *,
        subordinate_id: str | None = None,
    ) -> User:
        """Return the manager if it may supervise a user of subordinate_role.

        The manager must exist, be active, belong to tenant_id and hold the
        role exactly one level above. Roles strictly decrease along valid
        lines, so no cycle can form.

        Raises:
            ValidationException: Any of the above does not hold, or the user
                would report to themselves.
        """
        role = normalize_role(subordinate_role)
        if not manager_id:
            raise ValidationException("reportingTo is required", field="reportingTo")
        if subordinate_id is not None and subordinate_id == manager_id:
            raise ValidationException(
                "A user cannot report to themselves", field="reportingTo"
            )
        manager = await self.store.get_user_by_id(manager_id)
        if manager is None or manager.is_deleted or manager.tenant_id != tenant_id:
            raise ValidationException(
                "Invalid reportingTo: manager not found in tenant", field="reportingTo"
            )
        if not manager.role.is_directly_above(role):
            raise ValidationException(
                f"Invalid reportingTo: a {role.value} must report to a role one level above",
                field="reportingTo",
            )
        return manager

    async def invalidate(self, manager_id: str | None, tenant_id: str) -> None:
        """Drop cached report ids for a manager (or the whole tenant when manager_id is None)."""
        if not (self.cache and self.cache.is_available()):
            return
        logger.debug("Invalidating hierarchy cache for %s in %s", manager_id, tenant_id)
        if manager_id is None:
            await self.cache.delete_pattern(hierarchy_tenant_pattern(tenant_id))
        else:
            await self.cache.delete(hierarchy_key(tenant_id, manager_id))
