"""Tests for TokenService: issuance, verification, rotation, revocation."""

import asyncio
from dataclasses import replace
from datetime import timedelta

import pytest

from crm_access.application.dtos.auth import TokenClaims
from crm_access.application.services.token_service import TokenService
from crm_access.domain.enums import Role
from crm_access.domain.exceptions import (
    AccountDisabledException,
    InvalidTokenException,
    StoreUnavailableException,
    TokenRevokedException,
)
from crm_access.infrastructure.memory.credential_store import InMemoryCredentialStore
from crm_access.shared.utils.datetime import to_epoch_ms


class UnwritableTokenStore(InMemoryCredentialStore):
    """Refresh token writes fail as if the store were down."""

    async def put_refresh_token(self, token) -> None:
        raise StoreUnavailableException("put_refresh_token", "ConnectError")


class SwitchableTokenStore(InMemoryCredentialStore):
    """Refresh token writes fail while fail_writes is set."""

    fail_writes = False

    async def put_refresh_token(self, token) -> None:
        if self.fail_writes:
            raise StoreUnavailableException("put_refresh_token", "ConnectError")
        await super().put_refresh_token(token)


class PausedTouchStore(InMemoryCredentialStore):
    """Holds touch_refresh_token until released, so a revoke can land first."""

    def __init__(self) -> None:
        super().__init__()
        self.touch_started = asyncio.Event()
        self.release = asyncio.Event()

    async def touch_refresh_token(self, jti, when) -> bool:
        self.touch_started.set()
        await self.release.wait()
        return await super().touch_refresh_token(jti, when)


@pytest.fixture
async def rep(make_user):
    return await make_user("alice@x.com", Role.SALES_REP, "T1")


class TestConstruction:
    def test_secrets_must_differ(self, store, codec) -> None:
        with pytest.raises(ValueError):
            TokenService(store, codec, access_secret="same", refresh_secret="same")


class TestIssuance:
    async def test_pair_claims_match_user(self, tokens, rep, clock) -> None:
        pair = await tokens.issue_token_pair(TokenClaims.for_user(rep))
        claims = tokens.verify_access_token(pair.access_token)
        assert (claims.user_id, claims.role, claims.tenant_id) == (
            rep.user_id,
            Role.SALES_REP,
            "T1",
        )
        assert claims.email == "alice@x.com"
        assert pair.access_token_expiry == to_epoch_ms(clock() + timedelta(minutes=180))
        assert pair.refresh_token_expiry == to_epoch_ms(clock() + timedelta(days=7))

    async def test_refresh_record_is_persisted(self, tokens, store, rep, codec) -> None:
        token = await tokens.issue_refresh_token(TokenClaims.for_user(rep))
        jti = codec.peek(token)["jti"]
        record = await store.get_refresh_token(jti)
        assert record is not None
        assert record.user_id == rep.user_id
        assert record.token == token

    async def test_tokens_are_not_interchangeable(self, tokens, rep) -> None:
        pair = await tokens.issue_token_pair(TokenClaims.for_user(rep))
        with pytest.raises(InvalidTokenException):
            tokens.verify_access_token(pair.refresh_token)
        with pytest.raises(InvalidTokenException):
            await tokens.verify_refresh_token(pair.access_token)

    async def test_missing_collection_is_created_on_write(self, tokens, store, rep) -> None:
        store.drop_refresh_tokens()
        token = await tokens.issue_refresh_token(TokenClaims.for_user(rep))
        claims = await tokens.verify_refresh_token(token)
        assert claims.user_id == rep.user_id

    async def test_store_failure_aborts_issuance(self, codec, settings, clock, rep) -> None:
        svc = TokenService.from_settings(UnwritableTokenStore(), codec, settings, clock=clock)
        with pytest.raises(StoreUnavailableException):
            await svc.issue_token_pair(TokenClaims.for_user(rep))

    async def test_unpersisted_fallback_is_opt_in(self, codec, settings, clock, rep) -> None:
        svc = TokenService.from_settings(UnwritableTokenStore(), codec, settings, clock=clock)
        pair = await svc.issue_token_pair(
            TokenClaims.for_user(rep), allow_unpersisted_refresh=True
        )
        assert pair.refresh_token
        with pytest.raises(TokenRevokedException):
            await svc.verify_refresh_token(pair.refresh_token)


class TestVerification:
    async def test_expired_access_token_rejected(self, tokens, rep, clock) -> None:
        token = tokens.issue_access_token(TokenClaims.for_user(rep))
        clock.advance(minutes=181)
        with pytest.raises(InvalidTokenException) as exc_info:
            tokens.verify_access_token(token)
        assert exc_info.value.details["reason"] == "expired"

    async def test_tampered_token_rejected(self, tokens, rep) -> None:
        token = tokens.issue_access_token(TokenClaims.for_user(rep))
        head, payload, signature = token.split(".")
        with pytest.raises(InvalidTokenException):
            tokens.verify_access_token(f"{head}.{payload}.{signature[::-1]}")

    async def test_refresh_updates_last_used(self, tokens, store, rep, codec, clock) -> None:
        token = await tokens.issue_refresh_token(TokenClaims.for_user(rep))
        clock.advance(minutes=10)
        await tokens.verify_refresh_token(token)
        record = await store.get_refresh_token(codec.peek(token)["jti"])
        assert record.last_used == clock()

    async def test_deleted_jti_rejected_despite_valid_signature(
        self, tokens, rep, codec
    ) -> None:
        token = await tokens.issue_refresh_token(TokenClaims.for_user(rep))
        await tokens.revoke(codec.peek(token)["jti"])
        with pytest.raises(TokenRevokedException):
            await tokens.verify_refresh_token(token)

    async def test_revoke_during_verify_is_not_undone(
        self, codec, settings, clock, make_user
    ) -> None:
        store = PausedTouchStore()
        service = TokenService.from_settings(store, codec, settings, clock=clock)
        user = await make_user("carol@x.com", Role.SALES_REP, "T1")
        await store.put_user(user)
        token = await service.issue_refresh_token(TokenClaims.for_user(user))
        jti = codec.peek(token)["jti"]

        verifying = asyncio.create_task(service.verify_refresh_token(token))
        await store.touch_started.wait()
        await service.revoke(jti)
        store.release.set()

        with pytest.raises(TokenRevokedException):
            await verifying
        assert await store.get_refresh_token(jti) is None

    async def test_touch_missing_record_reports_false(self, store, clock) -> None:
        assert await store.touch_refresh_token("never-issued", clock()) is False
        assert await store.get_refresh_token("never-issued") is None

    async def test_expired_record_is_deleted(self, tokens, store, rep, codec, clock) -> None:
        token = await tokens.issue_refresh_token(TokenClaims.for_user(rep))
        jti = codec.peek(token)["jti"]
        record = await store.get_refresh_token(jti)
        await store.put_refresh_token(
            replace(record, expires_at=clock() - timedelta(seconds=1))
        )
        with pytest.raises(InvalidTokenException):
            await tokens.verify_refresh_token(token)
        assert await store.get_refresh_token(jti) is None

    async def test_refresh_valid_until_expiry_then_fails(self, tokens, rep, clock) -> None:
        token = await tokens.issue_refresh_token(TokenClaims.for_user(rep))
        clock.advance(days=6, hours=23)
        await tokens.verify_refresh_token(token)
        clock.advance(hours=2)
        with pytest.raises(InvalidTokenException):
            await tokens.verify_refresh_token(token)


class TestNearExpiry:
    async def test_monotonic_until_expiry(self, tokens, rep, clock) -> None:
        token = tokens.issue_access_token(TokenClaims.for_user(rep))
        seen_true = False
        for _ in range(40):
            near = tokens.is_near_expiry(token)
            if seen_true:
                assert near
            seen_true = seen_true or near
            clock.advance(minutes=5)
        assert seen_true

    async def test_threshold_boundary(self, tokens, rep, clock) -> None:
        token = tokens.issue_access_token(TokenClaims.for_user(rep))
        clock.advance(minutes=174)
        assert not tokens.is_near_expiry(token)
        clock.advance(minutes=2)
        assert tokens.is_near_expiry(token)

    def test_garbage_counts_as_near_expiry(self, tokens) -> None:
        assert tokens.is_near_expiry("not-a-jwt")


class TestRotation:
    async def test_rotation_is_single_use(self, tokens, rep) -> None:
        pair = await tokens.issue_token_pair(TokenClaims.for_user(rep))
        result = await tokens.rotate_refresh_token(pair.refresh_token)
        assert result.tokens.refresh_token != pair.refresh_token
        with pytest.raises(TokenRevokedException):
            await tokens.rotate_refresh_token(pair.refresh_token)
        await tokens.verify_refresh_token(result.tokens.refresh_token)

    async def test_failed_issuance_keeps_old_refresh_token(
        self, codec, settings, clock, make_user
    ) -> None:
        store = SwitchableTokenStore()
        service = TokenService.from_settings(store, codec, settings, clock=clock)
        user = await make_user("dave@x.com", Role.SALES_REP, "T1")
        await store.put_user(user)
        pair = await service.issue_token_pair(TokenClaims.for_user(user))

        store.fail_writes = True
        with pytest.raises(StoreUnavailableException):
            await service.rotate_refresh_token(pair.refresh_token)

        store.fail_writes = False
        claims = await service.verify_refresh_token(pair.refresh_token)
        assert claims.user_id == user.user_id

    async def test_rotation_picks_up_role_changes(self, tokens, store, rep) -> None:
        pair = await tokens.issue_token_pair(TokenClaims.for_user(rep))
        await store.put_user(replace(rep, role=Role.SALES_MANAGER))
        result = await tokens.rotate_refresh_token(pair.refresh_token)
        claims = tokens.verify_access_token(result.tokens.access_token)
        assert claims.role is Role.SALES_MANAGER

    async def test_rotation_refused_for_deleted_user(self, tokens, store, rep, clock) -> None:
        pair = await tokens.issue_token_pair(TokenClaims.for_user(rep))
        await store.put_user(rep.soft_deleted("admin", clock()))
        with pytest.raises(AccountDisabledException):
            await tokens.rotate_refresh_token(pair.refresh_token)

    async def test_rotate_is_noop_when_not_near_expiry(self, tokens, rep) -> None:
        pair = await tokens.issue_token_pair(TokenClaims.for_user(rep))
        assert await tokens.rotate(pair.access_token, pair.refresh_token) is None
        await tokens.verify_refresh_token(pair.refresh_token)

    async def test_rotate_when_near_expiry(self, tokens, rep, clock) -> None:
        pair = await tokens.issue_token_pair(TokenClaims.for_user(rep))
        clock.advance(minutes=178)
        new_pair = await tokens.rotate(pair.access_token, pair.refresh_token)
        assert new_pair is not None
        assert not tokens.is_near_expiry(new_pair.access_token)
        with pytest.raises(TokenRevokedException):
            await tokens.verify_refresh_token(pair.refresh_token)


class TestRevocation:
    async def test_revoke_all_for_user(self, tokens, store, rep, make_user) -> None:
        other = await make_user("bob@x.com", Role.SALES_REP, "T1")
        for _ in range(3):
            await tokens.issue_refresh_token(TokenClaims.for_user(rep))
        kept = await tokens.issue_refresh_token(TokenClaims.for_user(other))

        assert await tokens.revoke_all_for_user(rep.user_id) == 3
        assert await store.list_refresh_tokens_by_user(rep.user_id) == []
        await tokens.verify_refresh_token(kept)

    async def test_decode_refresh_claims_accepts_expired_token(
        self, tokens, rep, clock
    ) -> None:
        token = await tokens.issue_refresh_token(TokenClaims.for_user(rep))
        clock.advance(days=8)
        claims = tokens.decode_refresh_claims(token)
        assert claims.user_id == rep.user_id
        assert claims.jti


class TestInspect:
    async def test_valid_token(self, tokens, rep) -> None:
        token = tokens.issue_access_token(TokenClaims.for_user(rep))
        result = tokens.inspect(token)
        assert result.valid and not result.expired and not result.near_expiry
        assert result.payload["userId"] == rep.user_id

    async def test_expired_token_keeps_payload(self, tokens, rep, clock) -> None:
        token = tokens.issue_access_token(TokenClaims.for_user(rep))
        clock.advance(hours=4)
        result = tokens.inspect(token)
        assert not result.valid
        assert result.expired
        assert result.near_expiry
        assert result.payload["tenantId"] == "T1"

    async def test_long_expired_token_reports_expired(self, tokens, rep, clock) -> None:
        token = tokens.issue_access_token(TokenClaims.for_user(rep))
        clock.advance(days=30)
        result = tokens.inspect(token)
        assert result.expired and not result.valid
        assert result.payload["userId"] == rep.user_id

    async def test_forged_token_has_no_payload(self, tokens, rep, codec, clock) -> None:
        forged = codec.encode(
            TokenClaims.for_user(rep).to_payload(),
            secret="attacker-secret",
            issued_at=clock(),
            expires_at=clock() + timedelta(hours=1),
        )
        result = tokens.inspect(forged)
        assert not result.valid
        assert not result.expired
        assert result.payload is None
