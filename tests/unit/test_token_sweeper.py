"""Tests for TokenSweeper."""

import asyncio
from datetime import timedelta

import pytest

from crm_access.application.services.token_sweeper import TokenSweeper
from crm_access.domain.entities import RefreshToken
from crm_access.domain.exceptions import StoreUnavailableException
from crm_access.infrastructure.memory.credential_store import InMemoryCredentialStore


def _record(jti: str, expires_at) -> RefreshToken:
    return RefreshToken(jti=jti, user_id="u1", token="t", expires_at=expires_at)


async def test_sweep_removes_only_expired(store, clock) -> None:
    now = clock()
    await store.put_refresh_token(_record("old", now - timedelta(seconds=1)))
    await store.put_refresh_token(_record("older", now - timedelta(days=3)))
    await store.put_refresh_token(_record("live", now + timedelta(days=1)))

    removed = await TokenSweeper(store, clock).sweep()

    assert removed == 2
    assert await store.get_refresh_token("old") is None
    assert await store.get_refresh_token("live") is not None


async def test_sweep_nothing_to_do(store, clock) -> None:
    assert await TokenSweeper(store, clock).sweep() == 0


async def test_sweep_skipped_when_store_down(store, clock, monkeypatch) -> None:
    async def unavailable(now):
        raise StoreUnavailableException("list_expired_refresh_tokens", "ConnectionError")

    monkeypatch.setattr(store, "list_expired_refresh_tokens", unavailable)
    assert await TokenSweeper(store, clock).sweep() == 0


async def test_sweep_stops_on_delete_failure(store, clock, monkeypatch) -> None:
    now = clock()
    await store.put_refresh_token(_record("a", now - timedelta(days=1)))
    await store.put_refresh_token(_record("b", now - timedelta(days=1)))

    async def unavailable(jti):
        raise StoreUnavailableException("delete_refresh_token", "ConnectionError")

    monkeypatch.setattr(store, "delete_refresh_token", unavailable)
    assert await TokenSweeper(store, clock).sweep() == 0


class CorruptRecordStore(InMemoryCredentialStore):
    """First listing hits a malformed record, later ones succeed."""

    def __init__(self) -> None:
        super().__init__()
        self.listings = 0

    async def list_expired_refresh_tokens(self, now):
        self.listings += 1
        if self.listings == 1:
            raise KeyError("expires_at")
        return await super().list_expired_refresh_tokens(now)


async def test_loop_survives_unexpected_errors(clock) -> None:
    store = CorruptRecordStore()
    await store.put_refresh_token(_record("old", clock() - timedelta(days=1)))
    task = asyncio.create_task(TokenSweeper(store, clock).run_forever(0))
    while store.listings < 2:
        await asyncio.sleep(0)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert await store.get_refresh_token("old") is None
