"""Composition root: builds the store, cache and services once per process.

initialize() is called from the lifespan (and directly by tests, since
ASGI test transports skip lifespan events). The result is stored on
app.state.deps and read by the API dependencies.
"""

from __future__ import annotations

from dataclasses import dataclass

from crm_access.application.interfaces.repositories import ICredentialStore
from crm_access.application.services.auth_service import AuthService
from crm_access.application.services.hierarchy_resolver import HierarchyResolver
from crm_access.application.services.permission_engine import PermissionEngine
from crm_access.application.services.token_service import TokenService
from crm_access.application.services.token_sweeper import TokenSweeper
from crm_access.application.services.user_admin_service import UserAdminService
from crm_access.core.config import Settings
from crm_access.domain.constants import CREATED_BY_SYSTEM
from crm_access.domain.entities import User
from crm_access.domain.enums import Role
from crm_access.domain.exceptions import (
    StoreUnavailableException,
    UserAlreadyExistsException,
)
from crm_access.domain.permissions import PermissionMatrix, build_default_matrix
from crm_access.infrastructure.cache.redis_cache import CacheService
from crm_access.infrastructure.security.jwt import JoseTokenCodec
from crm_access.infrastructure.security.password import BcryptPasswordHasher
from crm_access.infrastructure.store_retry import ResilientCredentialStore
from crm_access.shared.telemetry import get_logger
from crm_access.shared.utils.datetime import Clock, utc_now
from crm_access.shared.utils.generators import generate_cuid

logger = get_logger(__name__)


@dataclass
class Dependencies:
    """Everything the API layer needs, built once at startup."""

    settings: Settings
    store: ICredentialStore
    cache: CacheService | None
    matrix: PermissionMatrix
    hasher: BcryptPasswordHasher
    tokens: TokenService
    hierarchy: HierarchyResolver
    permissions: PermissionEngine
    auth: AuthService
    users: UserAdminService
    sweeper: TokenSweeper
    clock: Clock

    async def aclose(self) -> None:
        if self.cache is not None:
            await self.cache.disconnect()
        await self.store.aclose()
        logger.info("Dependencies closed")


def build_backend_store(settings: Settings) -> ICredentialStore:
    """Raw store for the configured backend (no retry/timeout wrapper)."""
    if settings.store_backend == "memory":
        from crm_access.infrastructure.memory.credential_store import (
            InMemoryCredentialStore,
        )

        logger.warning("Using in-memory credential store; data is lost on restart")
        return InMemoryCredentialStore(
            refresh_tokens_collection=settings.refresh_tokens_collection
        )

    from crm_access.infrastructure.firebase.client import create_firestore_client
    from crm_access.infrastructure.firebase.repositories.credential_store_firestore import (
        FirestoreCredentialStore,
    )

    return FirestoreCredentialStore(
        create_firestore_client(settings),
        users_collection=settings.users_collection,
        refresh_tokens_collection=settings.refresh_tokens_collection,
    )


async def bootstrap_super_admin(deps: Dependencies) -> User | None:
    """Create the configured super admin when missing. Best effort; never raises."""
    settings = deps.settings
    email = settings.bootstrap_super_admin_email
    password = settings.bootstrap_super_admin_password
    if not email or password is None or not password.get_secret_value():
        return None
    try:
        existing = await deps.store.get_user_by_email(email)
        if existing is not None:
            return existing
        now = deps.clock()
        user = User(
            user_id=generate_cuid(),
            email=email.strip().lower(),
            role=Role.SUPER_ADMIN,
            tenant_id=settings.bootstrap_super_admin_tenant_id,
            hashed_password=await deps.hasher.hash(password.get_secret_value()),
            first_name="Super",
            last_name="Admin",
            created_by=CREATED_BY_SYSTEM,
            created_at=now,
            updated_at=now,
        )
        try:
            await deps.store.put_user(user, create=True)
        except UserAlreadyExistsException:
            # Another instance seeded it first.
            return await deps.store.get_user_by_email(email)
        logger.info("Bootstrap super admin created: %s", user.user_id)
        return user
    except StoreUnavailableException as e:
        logger.error("Bootstrap super admin skipped: %s", e.details)
        return None


async def initialize(
    settings: Settings,
    *,
    store: ICredentialStore | None = None,
    clock: Clock = utc_now,
) -> Dependencies:
    """Build and warm up all dependencies.

    Args:
        settings: Loaded settings.
        store: Optional backend store (tests inject one); wrapped with the
            retry/timeout policy like the configured backend.
        clock: Time source shared by every service.
    """
    backend = store if store is not None else build_backend_store(settings)
    resilient = ResilientCredentialStore(
        backend,
        timeout_seconds=settings.store_timeout_seconds,
        max_attempts=settings.store_retry_attempts,
        base_delay_seconds=settings.store_retry_base_delay_seconds,
        max_delay_seconds=settings.store_retry_max_wait_seconds,
    )

    cache: CacheService | None = None
    if settings.redis_enabled:
        cache = CacheService(settings)
        await cache.connect()

    matrix = build_default_matrix()
    hasher = BcryptPasswordHasher(rounds=settings.bcrypt_rounds)
    tokens = TokenService.from_settings(
        resilient, JoseTokenCodec(settings.algorithm), settings, clock=clock
    )
    hierarchy = HierarchyResolver(resilient, cache, cache_ttl=settings.cache_ttl_hierarchy)
    permissions = PermissionEngine(matrix, hierarchy)
    deps = Dependencies(
        settings=settings,
        store=resilient,
        cache=cache,
        matrix=matrix,
        hasher=hasher,
        tokens=tokens,
        hierarchy=hierarchy,
        permissions=permissions,
        auth=AuthService(resilient, tokens, hasher),
        users=UserAdminService(resilient, permissions, hierarchy, tokens, hasher, clock),
        sweeper=TokenSweeper(resilient, clock),
        clock=clock,
    )

    try:
        await resilient.ensure_ready()
    except StoreUnavailableException as e:
        logger.error("Credential store not ready at startup: %s", e.details)
    await bootstrap_super_admin(deps)
    await deps.sweeper.sweep()
    logger.info("Dependencies initialized (store backend: %s)", settings.store_backend)
    return deps
