"""Firestore REST v1 client scoped to what the credential store needs.

Documents are addressed by (collection, document id); queries are single
collection structured queries with ANDed field filters. google-auth mints
service account tokens, httpx.AsyncClient carries the calls.

Status handling: 409 on create raises DocumentExistsError, 404 on a write
raises CollectionMissingError, 404 on a read or delete means "no document".
Every other non-2xx status and every transport failure surfaces as an httpx
exception; the retry wrapper decides which are transient.
"""

from __future__ import annotations

import asyncio
from typing import Any, NamedTuple
from urllib.parse import quote

import httpx

from crm_access.infrastructure.firebase._rest_encoding import (
    decode_document,
    encode_document,
    encode_value,
)

FIRESTORE_SCOPE = "https://www.googleapis.com/auth/datastore"
FIRESTORE_API = "https://firestore.googleapis.com/v1"


def load_credentials(key_dict: dict):
    """Service account credentials scoped for Firestore."""
    from google.oauth2 import service_account

    return service_account.Credentials.from_service_account_info(
        key_dict, scopes=[FIRESTORE_SCOPE]
    )


def _fresh_token(credentials) -> str:
    from google.auth.transport.requests import Request

    if not credentials.valid:
        credentials.refresh(Request())
    return credentials.token


class DocumentExistsError(Exception):
    """createDocument hit an existing document id (409)."""


class CollectionMissingError(Exception):
    """A write returned 404: the database or collection path does not exist."""

    def __init__(self, collection: str) -> None:
        super().__init__(collection)
        self.collection = collection


class FieldFilter(NamedTuple):
    """One fieldFilter clause; op is the Firestore operator name."""

    field: str
    op: str
    value: Any

    def to_rest(self) -> dict[str, Any]:
        return {
            "fieldFilter": {
                "field": {"fieldPath": self.field},
                "op": self.op,
                "value": encode_value(self.value),
            }
        }


def equals(field: str, value: Any) -> FieldFilter:
    return FieldFilter(field, "EQUAL", value)


def less_than(field: str, value: Any) -> FieldFilter:
    return FieldFilter(field, "LESS_THAN", value)


def structured_query(
    collection: str, filters: tuple[FieldFilter, ...], limit: int | None = None
) -> dict[str, Any]:
    """structuredQuery body; several filters become an AND compositeFilter."""
    query: dict[str, Any] = {"from": [{"collectionId": collection}]}
    clauses = [f.to_rest() for f in filters]
    if len(clauses) == 1:
        query["where"] = clauses[0]
    elif clauses:
        query["where"] = {"compositeFilter": {"op": "AND", "filters": clauses}}
    if limit:
        query["limit"] = limit
    return query


class FirestoreRESTClient:
    """Async Firestore client over the REST API (no firebase-admin, no grpc)."""

    def __init__(
        self,
        project_id: str,
        credentials,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.project_id = project_id
        self._credentials = credentials
        self._documents = f"{FIRESTORE_API}/projects/{project_id}/databases/(default)/documents"
        self._http = http_client if http_client is not None else httpx.AsyncClient(timeout=timeout)
        self._owns_http = http_client is None

    async def aclose(self) -> None:
        """Close the HTTP client unless it was injected."""
        if self._owns_http:
            await self._http.aclose()

    async def _headers(self) -> dict[str, str]:
        # Clients built without credentials (emulator, tests) send no token.
        if self._credentials is None:
            return {}
        token = await asyncio.to_thread(_fresh_token, self._credentials)
        return {"Authorization": f"Bearer {token}"}

    async def _send(
        self,
        method: str,
        url: str,
        *,
        body: dict | None = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        response = await self._http.request(
            method, url, json=body, params=params, headers=await self._headers()
        )
        if response.status_code == 409:
            raise DocumentExistsError(url)
        if response.status_code != 404:
            response.raise_for_status()
        return response

    def _document_url(self, collection: str, document_id: str) -> str:
        return f"{self._documents}/{collection}/{quote(document_id, safe='')}"

    async def get_document(self, collection: str, document_id: str) -> dict[str, Any] | None:
        """Decoded fields of the document, or None when it does not exist."""
        response = await self._send("GET", self._document_url(collection, document_id))
        if response.status_code == 404 or not response.content:
            return None
        return decode_document(response.json())

    async def create_document(
        self, collection: str, document_id: str, data: dict[str, Any]
    ) -> None:
        """Create with an explicit id; DocumentExistsError when the id is taken."""
        response = await self._send(
            "POST",
            f"{self._documents}/{collection}",
            body=encode_document(data),
            params={"documentId": document_id},
        )
        if response.status_code == 404:
            raise CollectionMissingError(collection)

    async def set_document(self, collection: str, document_id: str, data: dict[str, Any]) -> None:
        """Create or fully replace the document."""
        response = await self._send(
            "PATCH", self._document_url(collection, document_id), body=encode_document(data)
        )
        if response.status_code == 404:
            raise CollectionMissingError(collection)

    async def update_fields(
        self, collection: str, document_id: str, data: dict[str, Any]
    ) -> bool:
        """Patch only the given fields of an existing document.

        The write carries currentDocument.exists=true, so a document deleted in
        the meantime is not recreated. Returns False when it no longer exists.
        """
        response = await self._send(
            "PATCH",
            self._document_url(collection, document_id),
            body=encode_document(data),
            params={"updateMask.fieldPaths": list(data), "currentDocument.exists": "true"},
        )
        return response.status_code != 404

    async def delete_document(self, collection: str, document_id: str) -> None:
        """Delete; a document that is already gone is not an error."""
        await self._send("DELETE", self._document_url(collection, document_id))

    async def run_query(
        self, collection: str, *filters: FieldFilter, limit: int | None = None
    ) -> list[dict[str, Any]]:
        """Decoded fields of every matching document."""
        response = await self._send(
            "POST",
            f"{self._documents}:runQuery",
            body={"structuredQuery": structured_query(collection, filters, limit)},
        )
        if response.status_code == 404 or not response.content:
            return []
        results = response.json()
        if isinstance(results, dict):
            results = [results]
        return [decode_document(item["document"]) for item in results if "document" in item]
