"""Resources the permission engine reasons about, and list access filters.

A Resource is a tagged union: each subclass carries its ResourceType as a
class constant, so the engine never has to guess what it is looking at.
Collaborators holding raw records (dicts from their own stores) convert
them with resource_from_mapping. Passing the type explicitly is strongly
preferred; the shape heuristic in infer_resource_type only exists for
legacy callers and misclassifies any record that happens to carry a
sibling type's marker field (e.g. a lead with a "website").
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar

from crm_access.domain.enums import ResourceType
from crm_access.domain.exceptions import ValidationException

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resource:
    """A tenant-scoped record with an owner (the user who created it)."""

    resource_type: ClassVar[ResourceType]

    id: str
    created_by: str
    tenant_id: str
    attributes: Mapping[str, Any] = field(
        default_factory=dict, compare=False, hash=False, repr=False
    )


@dataclass(frozen=True)
class Lead(Resource):
    resource_type: ClassVar[ResourceType] = ResourceType.LEAD


@dataclass(frozen=True)
class Contact(Resource):
    resource_type: ClassVar[ResourceType] = ResourceType.CONTACT


@dataclass(frozen=True)
class Deal(Resource):
    resource_type: ClassVar[ResourceType] = ResourceType.DEAL


@dataclass(frozen=True)
class Product(Resource):
    resource_type: ClassVar[ResourceType] = ResourceType.PRODUCT


@dataclass(frozen=True)
class Quote(Resource):
    resource_type: ClassVar[ResourceType] = ResourceType.QUOTE


@dataclass(frozen=True)
class Task(Resource):
    resource_type: ClassVar[ResourceType] = ResourceType.TASK


@dataclass(frozen=True)
class Subsidiary(Resource):
    resource_type: ClassVar[ResourceType] = ResourceType.SUBSIDIARY


@dataclass(frozen=True)
class Dealer(Resource):
    resource_type: ClassVar[ResourceType] = ResourceType.DEALER


@dataclass(frozen=True)
class UserRecord(Resource):
    """A user viewed as a resource (admin user management)."""

    resource_type: ClassVar[ResourceType] = ResourceType.USER


RESOURCE_CLASSES: dict[ResourceType, type[Resource]] = {
    cls.resource_type: cls
    for cls in (
        Lead,
        Contact,
        Deal,
        Product,
        Quote,
        Task,
        Subsidiary,
        Dealer,
        UserRecord,
    )
}

# Marker field -> type, checked in order. First match wins.
_SHAPE_MARKERS: tuple[tuple[tuple[str, ...], ResourceType], ...] = (
    (("leadOwner", "lead_owner"), ResourceType.LEAD),
    (("dealOwner", "deal_owner"), ResourceType.DEAL),
    (("assignee",), ResourceType.TASK),
    (("quoteOwner", "quote_owner"), ResourceType.QUOTE),
    (("category",), ResourceType.PRODUCT),
    (("companyName", "company_name"), ResourceType.CONTACT),
    (("registrationNumber", "registration_number"), ResourceType.SUBSIDIARY),
    (("website",), ResourceType.DEALER),
    (("role",), ResourceType.USER),
)


def infer_resource_type(data: Mapping[str, Any]) -> ResourceType:
    """Guess a record's type from marker fields; defaults to LEAD.

    Fragile: field presence is not a type tag. Prefer passing the type.
    """
    for keys, resource_type in _SHAPE_MARKERS:
        if any(key in data for key in keys):
            return resource_type
    return ResourceType.LEAD


def _first(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


def resource_from_mapping(
    data: Mapping[str, Any],
    resource_type: ResourceType | str | None = None,
) -> Resource:
    """Build a typed Resource from a raw record (camelCase or snake_case keys).

    Args:
        data: The record. Needs an id, createdBy and tenantId.
        resource_type: Explicit type. When omitted the type is inferred from
            the record's shape and a warning is logged.

    Raises:
        ValidationException: Unknown type, or the ownership fields are missing.
    """
    if resource_type is None:
        inferred = infer_resource_type(data)
        logger.warning(
            "Resource type inferred from record shape as %r; pass it explicitly",
            inferred.value,
        )
        resource_type = inferred
    elif not isinstance(resource_type, ResourceType):
        try:
            resource_type = ResourceType(str(resource_type).lower())
        except ValueError:
            raise ValidationException(
                f"Unknown resource type: {resource_type!r}", field="resource_type"
            ) from None

    resource_id = _first(data, "id", "userId", "user_id")
    created_by = _first(data, "createdBy", "created_by")
    tenant_id = _first(data, "tenantId", "tenant_id")
    if resource_id is None or created_by is None or tenant_id is None:
        raise ValidationException(
            "Resource requires id, createdBy and tenantId", field="resource"
        )
    cls = RESOURCE_CLASSES[resource_type]
    return cls(
        id=str(resource_id),
        created_by=str(created_by),
        tenant_id=str(tenant_id),
        attributes=dict(data),
    )


class AccessFilterKind(str, Enum):
    """How a list query must be narrowed for a subject."""

    NONE = "none"
    OWNER = "owner"
    OWNER_IN = "owner_in"
    DENY_ALL = "deny_all"


@dataclass(frozen=True)
class AccessFilter:
    """Row filter for list queries on one resource type.

    NONE means no owner restriction (tenant_id still applies when set).
    OWNER and OWNER_IN restrict created_by to owner_ids. DENY_ALL matches
    nothing.
    """

    kind: AccessFilterKind
    owner_ids: frozenset[str] = frozenset()
    tenant_id: str | None = None

    @classmethod
    def unrestricted(cls, tenant_id: str | None = None) -> AccessFilter:
        return cls(AccessFilterKind.NONE, tenant_id=tenant_id)

    @classmethod
    def deny_all(cls) -> AccessFilter:
        return cls(AccessFilterKind.DENY_ALL)

    @classmethod
    def for_owners(cls, owner_ids: Iterable[str]) -> AccessFilter:
        ids = frozenset(owner_ids)
        kind = AccessFilterKind.OWNER if len(ids) == 1 else AccessFilterKind.OWNER_IN
        return cls(kind, owner_ids=ids)

    def matches(self, resource: Resource) -> bool:
        if self.kind is AccessFilterKind.DENY_ALL:
            return False
        if self.kind is AccessFilterKind.NONE:
            return self.tenant_id is None or resource.tenant_id == self.tenant_id
        return resource.created_by in self.owner_ids

    def apply(self, resources: Iterable[Resource]) -> list[Resource]:
        """In-memory filtering for callers that cannot push the filter down."""
        return [r for r in resources if self.matches(r)]
