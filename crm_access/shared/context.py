"""Request-scoped context: request id and the authenticated actor.

RequestIDMiddleware sets the request id; the authentication gate sets the
actor once the bearer token has been verified. Both are read by the log
filter in crm_access.shared.telemetry.logging and by the error handlers,
so log lines carry them without threading them through every call.
Outside a request (startup, token sweep) the actor is SYSTEM.
"""

from contextvars import ContextVar, Token
from dataclasses import dataclass

from crm_access.shared.enums import ActorType


@dataclass(frozen=True)
class ActorContext:
    """Who the current request acts as."""

    user_id: str | None
    tenant_id: str | None
    actor_type: ActorType
    ip_address: str | None = None


SYSTEM_ACTOR = ActorContext(user_id=None, tenant_id=None, actor_type=ActorType.SYSTEM)

_actor: ContextVar[ActorContext] = ContextVar("actor", default=SYSTEM_ACTOR)
_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)


def set_current_user(
    user_id: str | None,
    tenant_id: str | None = None,
    actor_type: ActorType = ActorType.USER,
    ip_address: str | None = None,
) -> None:
    """Record the authenticated actor for the rest of this request.

    Raises:
        ValueError: If actor_type is USER and user_id is None or empty.
    """
    if actor_type == ActorType.USER and not user_id:
        raise ValueError("user_id is required when actor_type is USER")
    _actor.set(ActorContext(user_id, tenant_id, actor_type, ip_address))


def clear_current_user() -> None:
    _actor.set(SYSTEM_ACTOR)


def get_current_actor_id() -> str | None:
    """Return the current user ID, or None if not authenticated."""
    return _actor.get().user_id


def get_actor_context() -> ActorContext:
    return _actor.get()


def set_request_id(request_id: str) -> Token:
    """Bind the request id; pass the returned token to reset_request_id."""
    return _request_id.set(request_id)


def reset_request_id(token: Token) -> None:
    _request_id.reset(token)


def get_request_id() -> str | None:
    return _request_id.get()
