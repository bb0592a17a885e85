"""Shared utilities: context, enums, and cross-cutting helpers.

Used by domain, application, and infrastructure. No business logic.
"""

from crm_access.shared.context import (
    ActorContext,
    clear_current_user,
    get_actor_context,
    get_current_actor_id,
    set_current_user,
)
from crm_access.shared.enums import ActorType, TokenType
from crm_access.shared.utils import ensure_utc, generate_cuid, utc_now

__all__ = [
    "set_current_user",
    "clear_current_user",
    "get_current_actor_id",
    "get_actor_context",
    "ActorContext",
    "ActorType",
    "TokenType",
    "generate_cuid",
    "utc_now",
    "ensure_utc",
]
