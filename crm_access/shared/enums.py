"""Shared enumerations.

Cross-cutting enums used by application and infrastructure (actor type,
token type). Domain enums (Role, Action, ResourceType) live in
crm_access.domain.enums.
"""

from enum import Enum


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings."""
        return [member.value for member in cls]


class ActorType(_ValuesMixin, str, Enum):
    """Who is performing the action (request user or a background task)."""

    USER = "user"
    SYSTEM = "system"


class TokenType(_ValuesMixin, str, Enum):
    """Value of the JWT "type" claim."""

    ACCESS = "access"
    REFRESH = "refresh"
