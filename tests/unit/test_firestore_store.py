"""Tests for the Firestore REST credential store against a mocked transport."""

import json
from datetime import UTC, datetime, timedelta, timezone

import httpx
import pytest

from crm_access.domain.entities import RefreshToken, User
from crm_access.domain.enums import Role
from crm_access.domain.exceptions import (
    StoreTableMissingException,
    UserAlreadyExistsException,
)
from crm_access.infrastructure.firebase._rest_client import FirestoreRESTClient
from crm_access.infrastructure.firebase._rest_encoding import (
    decode_value,
    encode_value,
    encode_document,
)
from crm_access.infrastructure.firebase.repositories.credential_store_firestore import (
    FirestoreCredentialStore,
)

NOW = datetime(2026, 1, 5, 9, 0, tzinfo=UTC)


def _user(**overrides) -> User:
    values = dict(
        user_id="u1",
        email="alice@x.com",
        role=Role.SALES_REP,
        tenant_id="T1",
        hashed_password="hash",
        reporting_to="m1",
        created_at=NOW,
        updated_at=NOW,
    )
    values.update(overrides)
    return User(**values)


def _document(collection: str, doc_id: str, data: dict) -> dict:
    return {
        "name": f"projects/p/databases/(default)/documents/{collection}/{doc_id}",
        **encode_document(data),
    }


def make_store(handler) -> FirestoreCredentialStore:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return FirestoreCredentialStore(FirestoreRESTClient("p", None, http_client=http))


def is_query(request: httpx.Request) -> bool:
    return request.method == "POST" and request.url.path.endswith(":runQuery")


class TestUsers:
    async def test_missing_document_is_none(self) -> None:
        store = make_store(lambda request: httpx.Response(404))
        assert await store.get_user_by_email("nobody@x.com") is None

    async def test_get_by_email_uses_lowercased_doc_id(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200, json=_document("users", "alice@x.com", _user().to_record())
            )

        user = await make_store(handler).get_user_by_email("Alice@X.com")
        assert user is not None
        assert user.user_id == "u1"
        assert user.role is Role.SALES_REP
        assert user.created_at == NOW
        assert seen[0].url.path.endswith("/users/alice@x.com")

    async def test_create_conflict_is_duplicate(self) -> None:
        store = make_store(lambda request: httpx.Response(409))
        with pytest.raises(UserAlreadyExistsException):
            await store.put_user(_user(), create=True)

    async def test_create_posts_with_document_id(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={})

        await make_store(handler).put_user(_user(email="Alice@X.com"), create=True)
        assert seen[0].method == "POST"
        assert seen[0].url.params["documentId"] == "alice@x.com"
        fields = json.loads(seen[0].content)["fields"]
        assert fields["role"] == {"stringValue": "SALES_REP"}

    async def test_get_by_id_runs_query(self) -> None:
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            assert is_query(request)
            bodies.append(json.loads(request.content))
            return httpx.Response(
                200,
                json=[
                    {"document": _document("users", "alice@x.com", _user().to_record())},
                    {"readTime": "2026-01-05T09:00:00Z"},
                ],
            )

        user = await make_store(handler).get_user_by_id("u1")
        assert user is not None and user.email == "alice@x.com"
        query = bodies[0]["structuredQuery"]
        assert query["from"] == [{"collectionId": "users"}]
        assert query["where"]["fieldFilter"]["field"] == {"fieldPath": "user_id"}
        assert query["limit"] == 1

    async def test_get_by_id_no_match(self) -> None:
        store = make_store(
            lambda request: httpx.Response(200, json=[{"readTime": "2026-01-05T09:00:00Z"}])
        )
        assert await store.get_user_by_id("missing") is None

    async def test_list_by_manager_is_composite_query(self) -> None:
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(
                200,
                json=[{"document": _document("users", "alice@x.com", _user().to_record())}],
            )

        users = await make_store(handler).list_users_by_manager("m1", "T1")
        assert [u.user_id for u in users] == ["u1"]
        composite = bodies[0]["structuredQuery"]["where"]["compositeFilter"]
        assert composite["op"] == "AND"
        paths = [f["fieldFilter"]["field"]["fieldPath"] for f in composite["filters"]]
        assert paths == ["reporting_to", "tenant_id"]


class TestRefreshTokens:
    async def test_write_to_missing_collection(self) -> None:
        store = make_store(lambda request: httpx.Response(404))
        record = RefreshToken(jti="j1", user_id="u1", token="t", expires_at=NOW)
        with pytest.raises(StoreTableMissingException) as exc_info:
            await store.put_refresh_token(record)
        assert exc_info.value.collection == "refresh_tokens"

    async def test_touch_only_patches_existing_record(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={})

        assert await make_store(handler).touch_refresh_token("j1", NOW) is True
        request = seen[0]
        assert request.method == "PATCH"
        assert request.url.path.endswith("/refresh_tokens/j1")
        assert request.url.params.get_list("updateMask.fieldPaths") == ["last_used"]
        assert request.url.params["currentDocument.exists"] == "true"
        assert set(json.loads(request.content)["fields"]) == {"last_used"}

    async def test_touch_of_revoked_record_is_false(self) -> None:
        store = make_store(lambda request: httpx.Response(404))
        assert await store.touch_refresh_token("gone", NOW) is False

    async def test_delete_is_idempotent(self) -> None:
        store = make_store(lambda request: httpx.Response(404))
        await store.delete_refresh_token("gone")

    async def test_expired_query_uses_timestamp(self) -> None:
        bodies: list[dict] = []
        expired = RefreshToken(
            jti="j1", user_id="u1", token="t", expires_at=NOW - timedelta(days=1), created_at=NOW
        )

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(
                200, json=[{"document": _document("refresh_tokens", "j1", expired.to_record())}]
            )

        records = await make_store(handler).list_expired_refresh_tokens(NOW)
        assert [r.jti for r in records] == ["j1"]
        assert records[0].expires_at == NOW - timedelta(days=1)
        where = bodies[0]["structuredQuery"]["where"]["fieldFilter"]
        assert where["op"] == "LESS_THAN"
        assert where["value"] == {"timestampValue": "2026-01-05T09:00:00.000000Z"}

    async def test_server_error_surfaces(self) -> None:
        store = make_store(lambda request: httpx.Response(503))
        with pytest.raises(httpx.HTTPStatusError):
            await store.get_refresh_token("j1")


class TestEncoding:
    def test_aware_datetimes_written_as_utc(self) -> None:
        local = datetime(2026, 1, 5, 12, 0, tzinfo=timezone(timedelta(hours=3)))
        assert encode_value(local) == {"timestampValue": "2026-01-05T09:00:00.000000Z"}

    def test_nanosecond_timestamps_truncated(self) -> None:
        value = decode_value({"timestampValue": "2026-01-05T09:00:00.123456789Z"})
        assert value == datetime(2026, 1, 5, 9, 0, 0, 123456, tzinfo=UTC)

    def test_scalars_and_null(self) -> None:
        assert decode_value(encode_value(None)) is None
        assert decode_value(encode_value(True)) is True
        assert encode_value(7) == {"integerValue": "7"}
