"""Firestore repository implementations."""

from crm_access.infrastructure.firebase.repositories.credential_store_firestore import (
    FirestoreCredentialStore,
)

__all__ = ["FirestoreCredentialStore"]
