"""Application lifespan: startup and shutdown.

Single place for startup/shutdown logic. No business logic here, only
wiring: build dependencies, start the periodic token sweep, close
connections on exit.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from crm_access.core.bootstrap import initialize
from crm_access.core.config import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run startup then yield; on exit run shutdown.

    Startup: dependencies (store, cache, services, bootstrap admin, first
    sweep), then the periodic sweep task when enabled. Shutdown in reverse.
    """
    settings = get_settings()

    # ---- Startup ----
    deps = await initialize(settings)
    app.state.deps = deps

    sweep_task: asyncio.Task | None = None
    if settings.token_sweep_interval_seconds > 0:
        sweep_task = asyncio.create_task(
            deps.sweeper.run_forever(settings.token_sweep_interval_seconds)
        )
        logger.info(
            "Token sweep scheduled every %ss", settings.token_sweep_interval_seconds
        )

    yield

    # ---- Shutdown ----
    if sweep_task is not None:
        sweep_task.cancel()
        try:
            await sweep_task
        except asyncio.CancelledError:
            logger.info("Token sweep task stopped")

    await deps.aclose()
