"""Application configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Required secrets (SECRET_KEY, REFRESH_SECRET_KEY) and the
store backend are validated at load time.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment and .env.

    All settings are optional with defaults except those validated in
    validate_required_and_store (secret_key, refresh_secret_key, and the
    Firestore service account when store_backend is 'firestore').
    """

    # App
    app_name: str = "crm-access"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"

    # Store: "firestore" (Firestore REST) or "memory" (in-process, dev/tests)
    store_backend: str = "firestore"
    users_collection: str = "users"
    refresh_tokens_collection: str = "refresh_tokens"
    store_timeout_seconds: float = 5.0
    store_retry_attempts: int = 3
    store_retry_base_delay_seconds: float = 0.2
    store_retry_max_wait_seconds: float = 2.0

    # Firebase / Firestore: use key (env) or path (file).
    firebase_service_account_key: SecretStr | None = None
    firebase_service_account_path: str | None = None

    # Tokens
    secret_key: SecretStr = SecretStr("")
    refresh_secret_key: SecretStr = SecretStr("")
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 180
    refresh_token_expire_days: int = 7
    refresh_threshold_ms: int = 5 * 60 * 1000
    bcrypt_rounds: int = 12
    # Degraded login: hand out a refresh token even when it could not be persisted.
    allow_unpersisted_refresh_tokens: bool = False

    # Authentication gate: trust token claims when the user lookup cannot reach the store.
    fail_open_on_store_error: bool = False

    # Cookies
    refresh_cookie_name: str = "refreshToken"
    secure_cookies: bool = False

    # Expired refresh token sweep (0 disables the periodic task; startup sweep always runs).
    token_sweep_interval_seconds: int = 0

    # Bootstrap super admin (created on startup when both are set and the user is missing)
    bootstrap_super_admin_email: str | None = None
    bootstrap_super_admin_password: SecretStr | None = None
    bootstrap_super_admin_tenant_id: str = "SUPER_ADMIN_TENANT"

    # CORS
    allowed_origins: str = "http://localhost:3000,http://localhost:5173"

    # Request / middleware
    request_id_header: str = "X-Request-ID"
    rate_limit_enabled: bool = True

    # Redis Cache (hierarchy lookups)
    redis_enabled: bool = False
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: SecretStr | None = None
    cache_ttl_hierarchy: int = 60

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_required_and_store(self) -> "Settings":
        """Validate required secrets and the store backend.

        - Firestore: FIREBASE_SERVICE_ACCOUNT_KEY or FIREBASE_SERVICE_ACCOUNT_PATH required.
        - Memory: nothing else required (data is lost on restart).
        """
        if self.store_backend == "firestore":
            has_key = (
                self.firebase_service_account_key
                and self.firebase_service_account_key.get_secret_value()
            )
            if not has_key and not self.firebase_service_account_path:
                raise ValueError(
                    "When store_backend is 'firestore', set FIREBASE_SERVICE_ACCOUNT_KEY (full JSON string) "
                    "or FIREBASE_SERVICE_ACCOUNT_PATH (path to JSON file)."
                )
        elif self.store_backend != "memory":
            raise ValueError(
                f"store_backend must be 'firestore' or 'memory', got: {self.store_backend!r}"
            )
        if not self.secret_key.get_secret_value():
            raise ValueError(
                "SECRET_KEY is required. Generate with: openssl rand -hex 32."
            )
        if not self.refresh_secret_key.get_secret_value():
            raise ValueError(
                "REFRESH_SECRET_KEY is required. Generate with: openssl rand -hex 32."
            )
        if self.refresh_secret_key.get_secret_value() == self.secret_key.get_secret_value():
            raise ValueError("REFRESH_SECRET_KEY must differ from SECRET_KEY.")
        if self.store_retry_attempts < 1:
            raise ValueError("store_retry_attempts must be at least 1")
        return self

    @property
    def refresh_token_max_age_seconds(self) -> int:
        """Refresh cookie max-age, aligned with the refresh token lifetime."""
        return self.refresh_token_expire_days * 24 * 60 * 60


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() before overriding env vars so the next
    get_settings() uses the new values.

    Returns:
        Loaded and validated Settings instance.
    """
    return Settings()
