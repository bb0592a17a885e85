"""Domain enumerations: roles, actions, resource types.

normalize_role is the only place role aliases are translated; every
boundary (request bodies, store reads, token claims) calls it so that the
canonical Role values are the only form used internally.
"""

from enum import Enum

from crm_access.domain.exceptions import ValidationException


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings."""
        return [member.value for member in cls]


class Role(_ValuesMixin, str, Enum):
    """Canonical CRM roles, highest privilege first."""

    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    SALES_MANAGER = "SALES_MANAGER"
    SALES_REP = "SALES_REP"

    @property
    def level(self) -> int:
        """Ordinal in the hierarchy (SUPER_ADMIN=4 ... SALES_REP=1)."""
        return ROLE_LEVELS[self]

    def is_directly_above(self, other: "Role") -> bool:
        """Return True if self is exactly one level above other."""
        return self.level == other.level + 1

    def outranks(self, other: "Role") -> bool:
        return self.level > other.level


ROLE_LEVELS: dict[Role, int] = {
    Role.SUPER_ADMIN: 4,
    Role.ADMIN: 3,
    Role.SALES_MANAGER: 2,
    Role.SALES_REP: 1,
}

_ROLE_ALIASES: dict[str, Role] = {
    "super_admin": Role.SUPER_ADMIN,
    "superadmin": Role.SUPER_ADMIN,
    "admin": Role.ADMIN,
    "sales_manager": Role.SALES_MANAGER,
    "manager": Role.SALES_MANAGER,
    "sales_rep": Role.SALES_REP,
    "rep": Role.SALES_REP,
}


def normalize_role(value: "str | Role") -> Role:
    """Return the canonical Role for a role string or legacy alias.

    Accepts canonical names and legacy aliases ("MANAGER", "REP", "admin",
    "sales-rep", ...) in any case.

    Args:
        value: Role string from a request, a stored record, or a token claim.

    Returns:
        Canonical Role.

    Raises:
        ValidationException: If the value is empty or not a known role.
    """
    if isinstance(value, Role):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationException("Role is required", field="role")
    key = value.strip().lower().replace("-", "_").replace(" ", "_")
    role = _ROLE_ALIASES.get(key)
    if role is None:
        raise ValidationException(f"Unknown role: {value!r}", field="role")
    return role


class Action(_ValuesMixin, str, Enum):
    """Actions checked by the permission engine."""

    VIEW = "view"
    EDIT = "edit"
    DELETE = "delete"
    CREATE = "create"


class ResourceType(_ValuesMixin, str, Enum):
    """CRM resource types covered by the permission matrix."""

    LEAD = "lead"
    CONTACT = "contact"
    DEAL = "deal"
    PRODUCT = "product"
    QUOTE = "quote"
    TASK = "task"
    SUBSIDIARY = "subsidiary"
    DEALER = "dealer"
    USER = "user"
