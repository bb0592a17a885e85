"""Firestore client factory (REST-based, no firebase-admin).

Built at startup from either FIREBASE_SERVICE_ACCOUNT_KEY (JSON string) or
FIREBASE_SERVICE_ACCOUNT_PATH (file path). Unlike optional integrations, the
credential store is required, so bad credentials fail startup loudly.
"""

import json
import logging
from pathlib import Path

from crm_access.core.config import Settings
from crm_access.infrastructure.firebase._rest_client import (
    FirestoreRESTClient,
    load_credentials,
)

logger = logging.getLogger(__name__)


def _load_key_dict(settings: Settings) -> dict:
    """Return service account dict from env key or file path.

    Raises:
        ValueError: Key is not valid JSON, or the path does not point to a file.
    """
    key_json = (
        settings.firebase_service_account_key.get_secret_value()
        if settings.firebase_service_account_key
        else None
    )
    if key_json:
        try:
            return json.loads(key_json)
        except json.JSONDecodeError as e:
            raise ValueError("FIREBASE_SERVICE_ACCOUNT_KEY is not valid JSON") from e
    path = settings.firebase_service_account_path
    if not path:
        raise ValueError("No Firebase service account configured")
    resolved = Path(path).expanduser().resolve()
    if not resolved.is_file():
        raise ValueError(
            f"FIREBASE_SERVICE_ACCOUNT_PATH set but file not found: {path} (resolved: {resolved})"
        )
    with open(resolved, encoding="utf-8") as f:
        return json.load(f)


def create_firestore_client(settings: Settings) -> FirestoreRESTClient:
    """Build the Firestore REST client from the configured service account.

    Raises:
        ValueError: Missing or malformed service account, or no project_id.
    """
    key_dict = _load_key_dict(settings)
    project_id = key_dict.get("project_id")
    if not project_id:
        raise ValueError("Firebase service account JSON missing 'project_id'")
    credentials = load_credentials(key_dict)
    logger.info("Firestore client initialized for project %s", project_id)
    return FirestoreRESTClient(
        project_id, credentials, timeout=settings.store_timeout_seconds
    )
