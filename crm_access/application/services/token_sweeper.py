"""Expired refresh token sweep (startup and optional periodic task)."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from crm_access.domain.exceptions import StoreUnavailableException

if TYPE_CHECKING:
    from crm_access.application.interfaces.repositories import ICredentialStore
    from crm_access.shared.utils.datetime import Clock

logger = logging.getLogger(__name__)


class TokenSweeper:
    """Deletes refresh token records past their expiry. Best effort."""

    def __init__(self, store: ICredentialStore, clock: Clock) -> None:
        self.store = store
        self.clock = clock

    async def sweep(self) -> int:
        """Delete expired records; returns how many were removed.

        Store failures are logged and end the sweep early; they never propagate.
        """
        try:
            expired = await self.store.list_expired_refresh_tokens(self.clock())
        except StoreUnavailableException as e:
            logger.warning("Token sweep skipped: %s", e.details)
            return 0
        removed = 0
        for record in expired:
            try:
                await self.store.delete_refresh_token(record.jti)
            except StoreUnavailableException as e:
                logger.warning("Token sweep stopped after %d deletions: %s", removed, e.details)
                break
            removed += 1
        if removed:
            logger.info("Token sweep removed %d expired refresh tokens", removed)
        return removed

    async def run_forever(self, interval_seconds: float) -> None:
        """Sweep every interval_seconds until cancelled. A failed sweep is logged and skipped."""
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                await self.sweep()
            except Exception:
                logger.exception("Token sweep failed")
