"""Pytest configuration and fixtures for crm-access.

Environment is set before crm_access is imported so the app factory and
get_settings() see the test configuration: in-memory credential store,
cheap bcrypt, rate limiting off, fast store retries.

HTTP tests use crm_access.main:app through httpx ASGITransport. The
transport does not run lifespan events, so the client fixture installs
dependencies built by initialize() on app.state.deps itself.
"""

import os

os.environ["SECRET_KEY"] = "test-access-secret-key-0123456789abcdef"
os.environ["REFRESH_SECRET_KEY"] = "test-refresh-secret-key-0123456789abcdef"
os.environ["STORE_BACKEND"] = "memory"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SECURE_COOKIES"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["STORE_RETRY_ATTEMPTS"] = "2"
os.environ["STORE_RETRY_BASE_DELAY_SECONDS"] = "0.01"
os.environ["STORE_RETRY_MAX_WAIT_SECONDS"] = "0.02"
os.environ["STORE_TIMEOUT_SECONDS"] = "2"
os.environ["REDIS_ENABLED"] = "false"
os.environ["TOKEN_SWEEP_INTERVAL_SECONDS"] = "0"
os.environ["BOOTSTRAP_SUPER_ADMIN_EMAIL"] = "root@crm.com"
os.environ["BOOTSTRAP_SUPER_ADMIN_PASSWORD"] = "RootPassword123!"

from datetime import UTC, datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from crm_access.application.services.auth_service import AuthService  # noqa: E402
from crm_access.application.services.hierarchy_resolver import (  # noqa: E402
    HierarchyResolver,
)
from crm_access.application.services.permission_engine import (  # noqa: E402
    PermissionEngine,
)
from crm_access.application.services.token_service import TokenService  # noqa: E402
from crm_access.application.services.user_admin_service import (  # noqa: E402
    UserAdminService,
)
from crm_access.core.bootstrap import initialize  # noqa: E402
from crm_access.core.config import Settings, get_settings  # noqa: E402
from crm_access.domain.entities import User  # noqa: E402
from crm_access.domain.enums import Role  # noqa: E402
from crm_access.domain.permissions import build_default_matrix  # noqa: E402
from crm_access.infrastructure.memory.credential_store import (  # noqa: E402
    InMemoryCredentialStore,
)
from crm_access.infrastructure.security.jwt import JoseTokenCodec  # noqa: E402
from crm_access.infrastructure.security.password import (  # noqa: E402
    BcryptPasswordHasher,
)
from crm_access.shared.utils.generators import generate_cuid  # noqa: E402

get_settings.cache_clear()

from crm_access.main import app  # noqa: E402

DEFAULT_PASSWORD = "Password123!"


class FakeClock:
    """Settable time source shared by every service under test."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 5, 9, 0, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest.fixture
def hasher() -> BcryptPasswordHasher:
    return BcryptPasswordHasher(rounds=4)


@pytest.fixture
def codec() -> JoseTokenCodec:
    return JoseTokenCodec()


@pytest.fixture
def tokens(store, codec, settings, clock) -> TokenService:
    return TokenService.from_settings(store, codec, settings, clock=clock)


@pytest.fixture
def hierarchy(store) -> HierarchyResolver:
    return HierarchyResolver(store)


@pytest.fixture
def engine(hierarchy) -> PermissionEngine:
    return PermissionEngine(build_default_matrix(), hierarchy)


@pytest.fixture
def auth_service(store, tokens, hasher) -> AuthService:
    return AuthService(store, tokens, hasher)


@pytest.fixture
def user_admin(store, engine, hierarchy, tokens, hasher, clock) -> UserAdminService:
    return UserAdminService(store, engine, hierarchy, tokens, hasher, clock)


@pytest.fixture
def make_user(store, hasher, clock):
    """Factory writing an active user straight into the store."""

    async def _make(
        email: str,
        role: Role = Role.SALES_REP,
        tenant_id: str = "T1",
        *,
        reporting_to: str | None = None,
        created_by: str | None = None,
        password: str = DEFAULT_PASSWORD,
        is_deleted: bool = False,
    ) -> User:
        user = User(
            user_id=generate_cuid(),
            email=email,
            role=role,
            tenant_id=tenant_id,
            hashed_password=await hasher.hash(password),
            first_name=email.split("@")[0].title(),
            last_name="Test",
            reporting_to=reporting_to,
            created_by=created_by,
            is_deleted=is_deleted,
            created_at=clock(),
            updated_at=clock(),
        )
        await store.put_user(user, create=True)
        return user

    return _make


@pytest.fixture
async def deps(settings, store, clock):
    """Application dependencies over the shared in-memory store and fake clock."""
    built = await initialize(settings, store=store, clock=clock)
    yield built
    await built.aclose()


@pytest.fixture
async def client(deps) -> AsyncClient:
    """Async HTTP client against the FastAPI app (ASGI)."""
    app.state.deps = deps
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def login(client):
    """Log in through the API; returns (access_token, response)."""

    async def _login(email: str, password: str = DEFAULT_PASSWORD):
        response = await client.post(
            "/api/v1/auth/login", json={"email": email, "password": password}
        )
        assert response.status_code == 200, response.text
        return response.json()["accessToken"], response

    return _login


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_header():
    return bearer
