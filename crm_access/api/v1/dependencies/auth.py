"""Authentication gate and permission dependencies.

get_identity runs before any protected handler:

    no bearer token                 -> 401
    bad signature / expired / junk  -> 403
    user missing or soft-deleted    -> 401
    store unreachable               -> 503, or token claims when
                                       fail_open_on_store_error is set
    otherwise                       -> IdentityContext

The user record is re-read on every request so role, tenant and deletion
changes apply immediately rather than when the access token expires.
"""

import logging
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from crm_access.api.v1.dependencies.services import DepsDep
from crm_access.application.dtos.auth import IdentityContext
from crm_access.domain.enums import Action, ResourceType
from crm_access.domain.exceptions import (
    AccountDisabledException,
    AuthenticationException,
    StoreUnavailableException,
)
from crm_access.shared.context import set_current_user

logger = logging.getLogger(__name__)

_http_bearer = HTTPBearer(auto_error=False)


async def get_identity(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_http_bearer)],
    deps: DepsDep,
) -> IdentityContext:
    """Verify the bearer access token and attach the caller's identity.

    Raises:
        AuthenticationException: No token (401).
        InvalidTokenException: Token unusable (403).
        AccountDisabledException: User missing or deleted (401).
        StoreUnavailableException: User lookup failed and fail-open is off (503).
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationException("Access token required")
    token = credentials.credentials
    claims = deps.tokens.verify_access_token(token)
    near_expiry = deps.tokens.is_near_expiry(token)
    expires_at = claims.expires_at * 1000 if claims.expires_at else None

    try:
        user = await deps.store.get_user_by_id(claims.user_id)
    except StoreUnavailableException as e:
        if not deps.settings.fail_open_on_store_error:
            raise
        logger.warning(
            "User lookup failed for %s; trusting token claims: %s",
            claims.user_id,
            e.details,
        )
        identity = IdentityContext.from_claims(claims, near_expiry=near_expiry)
    else:
        if user is None:
            logger.warning("Token for unknown user %s", claims.user_id)
            raise AccountDisabledException(claims.user_id)
        if user.is_deleted:
            logger.warning("Token for deleted user %s", claims.user_id)
            raise AccountDisabledException(user.user_id, message="Account is disabled")
        identity = IdentityContext.from_user(
            user, token_expires_at=expires_at, near_expiry=near_expiry
        )

    request.state.identity = identity
    request.state.token_info = {"expires_at": expires_at, "near_expiry": near_expiry}
    set_current_user(
        identity.user_id,
        identity.tenant_id,
        ip_address=request.client.host if request.client else None,
    )
    return identity


IdentityDep = Annotated[IdentityContext, Depends(get_identity)]


def require_permission(action: Action | str, resource_type: ResourceType | str):
    """Dependency factory: authenticated caller whose role may perform action on the type."""

    async def _require(identity: IdentityDep, deps: DepsDep) -> IdentityContext:
        await deps.permissions.require_permission(identity, action, resource_type)
        return identity

    return _require
