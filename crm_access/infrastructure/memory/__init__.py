"""In-memory store backend (development and tests)."""

from crm_access.infrastructure.memory.credential_store import InMemoryCredentialStore

__all__ = ["InMemoryCredentialStore"]
