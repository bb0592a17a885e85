"""Tests for the composition root: super admin bootstrap and store warm-up."""

from dataclasses import replace

from fastapi import FastAPI

from crm_access.application.dtos.auth import TokenClaims
from crm_access.core.bootstrap import bootstrap_super_admin, build_backend_store, initialize
from crm_access.core.lifespan import create_lifespan
from crm_access.domain.constants import CREATED_BY_SYSTEM
from crm_access.domain.enums import Role
from crm_access.domain.exceptions import StoreUnavailableException, UserAlreadyExistsException
from crm_access.infrastructure.memory.credential_store import InMemoryCredentialStore


async def test_super_admin_created(deps) -> None:
    root = await deps.store.get_user_by_email("root@crm.com")
    assert root is not None
    assert root.role is Role.SUPER_ADMIN
    assert root.tenant_id == deps.settings.bootstrap_super_admin_tenant_id
    assert root.created_by == CREATED_BY_SYSTEM
    assert await deps.hasher.verify("RootPassword123!", root.hashed_password)


async def test_bootstrap_is_idempotent(deps) -> None:
    first = await deps.store.get_user_by_email("root@crm.com")
    again = await bootstrap_super_admin(deps)
    assert again is not None and again.user_id == first.user_id


async def test_missing_refresh_collection_healed_at_startup(settings, clock) -> None:
    store = InMemoryCredentialStore()
    store.drop_refresh_tokens()
    deps = await initialize(settings, store=store, clock=clock)
    try:
        root = await deps.store.get_user_by_email("root@crm.com")
        pair = await deps.tokens.issue_token_pair(TokenClaims.for_user(root))
        assert await deps.tokens.verify_refresh_token(pair.refresh_token)
    finally:
        await deps.aclose()


async def test_missing_refresh_collection_healed_on_write(deps, store) -> None:
    root = await deps.store.get_user_by_email("root@crm.com")
    store.drop_refresh_tokens()
    pair = await deps.tokens.issue_token_pair(TokenClaims.for_user(root))
    claims = await deps.tokens.verify_refresh_token(pair.refresh_token)
    assert claims.user_id == root.user_id


def test_memory_backend_selected(settings) -> None:
    assert isinstance(build_backend_store(settings), InMemoryCredentialStore)


async def test_lifespan_starts_and_stops_sweeper(settings, monkeypatch) -> None:
    monkeypatch.setattr(settings, "token_sweep_interval_seconds", 3600)
    app = FastAPI()
    async with create_lifespan(app):
        deps = app.state.deps
        assert await deps.store.get_user_by_email("root@crm.com") is not None


class SeededElsewhereStore(InMemoryCredentialStore):
    """Another instance wins the create, then the store drops out."""

    def __init__(self) -> None:
        super().__init__()
        self.lookups = 0

    async def get_user_by_email(self, email):
        self.lookups += 1
        if self.lookups > 1:
            raise StoreUnavailableException("get_user_by_email", "ConnectError")
        return None

    async def put_user(self, user, *, create=False):
        raise UserAlreadyExistsException()


async def test_bootstrap_tolerates_outage_after_lost_create(deps) -> None:
    store = SeededElsewhereStore()
    assert await bootstrap_super_admin(replace(deps, store=store)) is None
    assert store.lookups == 2
