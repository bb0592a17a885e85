"""Timeout and retry policy for credential store calls.

Every call is bounded by a per-attempt timeout. Transient failures
(timeouts, connection errors, 429/5xx) are retried with exponential backoff
and jitter; once attempts are exhausted, or on any other backend error, the
call fails with StoreUnavailableException. Domain exceptions raised by the
backend (duplicate email, missing collection) pass through untouched.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import TypeVar

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from crm_access.application.interfaces.repositories import ICredentialStore
from crm_access.domain.entities import RefreshToken, User
from crm_access.domain.exceptions import CrmAccessException, StoreUnavailableException

logger = logging.getLogger(__name__)

T = TypeVar("T")

# HTTP status codes that indicate transient errors (retry-able)
TRANSIENT_HTTP_CODES: frozenset[int] = frozenset({429, 500, 502, 503, 504})


def is_transient_error(exception: BaseException) -> bool:
    """Return True for failures worth retrying: timeouts, transport errors, 429/5xx."""
    if isinstance(exception, (asyncio.TimeoutError, TimeoutError, ConnectionError)):
        return True
    if isinstance(exception, httpx.TransportError):
        return True
    if isinstance(exception, httpx.HTTPStatusError):
        return exception.response.status_code in TRANSIENT_HTTP_CODES
    return False


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    wait_time = retry_state.next_action.sleep if retry_state.next_action else 0
    logger.warning(
        "Store call retry %d after %s (waiting %.2fs)",
        retry_state.attempt_number,
        type(exc).__name__ if exc else "unknown error",
        wait_time,
    )


class ResilientCredentialStore:
    """ICredentialStore decorator adding timeouts, retries and error mapping."""

    def __init__(
        self,
        inner: ICredentialStore,
        *,
        timeout_seconds: float = 5.0,
        max_attempts: int = 3,
        base_delay_seconds: float = 0.2,
        max_delay_seconds: float = 2.0,
    ) -> None:
        self.inner = inner
        self._timeout = timeout_seconds
        self._max_attempts = max_attempts
        self._base_delay = base_delay_seconds
        self._max_delay = max_delay_seconds

    async def _call(self, operation: str, fn: Callable[[], Awaitable[T]]) -> T:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential_jitter(
                initial=self._base_delay,
                max=self._max_delay,
                jitter=self._base_delay,
            ),
            retry=retry_if_exception(is_transient_error),
            before_sleep=_log_retry,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    return await asyncio.wait_for(fn(), timeout=self._timeout)
        except CrmAccessException:
            raise
        except Exception as e:
            logger.error(
                "Store operation %s failed: %s: %s", operation, type(e).__name__, e
            )
            raise StoreUnavailableException(operation, type(e).__name__) from e
        raise StoreUnavailableException(operation, "no attempt made")

    async def get_user_by_email(self, email: str) -> User | None:
        return await self._call(
            "get_user_by_email", lambda: self.inner.get_user_by_email(email)
        )

    async def get_user_by_id(self, user_id: str) -> User | None:
        return await self._call(
            "get_user_by_id", lambda: self.inner.get_user_by_id(user_id)
        )

    async def put_user(self, user: User, *, create: bool = False) -> None:
        await self._call("put_user", lambda: self.inner.put_user(user, create=create))

    async def list_users_by_manager(self, manager_id: str, tenant_id: str) -> list[User]:
        return await self._call(
            "list_users_by_manager",
            lambda: self.inner.list_users_by_manager(manager_id, tenant_id),
        )

    async def list_users_by_tenant(self, tenant_id: str) -> list[User]:
        return await self._call(
            "list_users_by_tenant", lambda: self.inner.list_users_by_tenant(tenant_id)
        )

    async def get_refresh_token(self, jti: str) -> RefreshToken | None:
        return await self._call(
            "get_refresh_token", lambda: self.inner.get_refresh_token(jti)
        )

    async def put_refresh_token(self, token: RefreshToken) -> None:
        await self._call("put_refresh_token", lambda: self.inner.put_refresh_token(token))

    async def touch_refresh_token(self, jti: str, when: datetime) -> bool:
        return await self._call(
            "touch_refresh_token", lambda: self.inner.touch_refresh_token(jti, when)
        )

    async def delete_refresh_token(self, jti: str) -> None:
        await self._call(
            "delete_refresh_token", lambda: self.inner.delete_refresh_token(jti)
        )

    async def list_refresh_tokens_by_user(self, user_id: str) -> list[RefreshToken]:
        return await self._call(
            "list_refresh_tokens_by_user",
            lambda: self.inner.list_refresh_tokens_by_user(user_id),
        )

    async def list_expired_refresh_tokens(self, now: datetime) -> list[RefreshToken]:
        return await self._call(
            "list_expired_refresh_tokens",
            lambda: self.inner.list_expired_refresh_tokens(now),
        )

    async def ensure_ready(self) -> None:
        await self._call("ensure_ready", self.inner.ensure_ready)

    async def ping(self) -> bool:
        return await self._call("ping", self.inner.ping)

    async def aclose(self) -> None:
        await self.inner.aclose()
