"""Health check endpoints: liveness and credential store readiness."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from crm_access.api.v1.dependencies import DepsDep
from crm_access.domain.exceptions import StoreUnavailableException
from crm_access.schemas.health import (
    HealthResponse,
    ReadinessErrorResponse,
    ReadinessResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Return simple ok status for liveness."""
    return HealthResponse()


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={503: {"description": "Credential store unreachable", "model": ReadinessErrorResponse}},
)
async def readiness_check(deps: DepsDep) -> ReadinessResponse | JSONResponse:
    """Return 200 if the credential store answers; 503 otherwise."""
    try:
        await deps.store.ping()
    except StoreUnavailableException as e:
        logger.warning("Readiness check failed: %s", e.details)
        return JSONResponse(
            status_code=503,
            content=ReadinessErrorResponse(
                message="Credential store unavailable"
            ).model_dump(),
        )
    return ReadinessResponse()
