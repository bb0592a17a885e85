"""Firestore (REST) backend for the credential store."""

from crm_access.infrastructure.firebase._rest_client import FirestoreRESTClient
from crm_access.infrastructure.firebase.client import create_firestore_client

__all__ = ["FirestoreRESTClient", "create_firestore_client"]
