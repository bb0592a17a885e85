"""Centralized exception handlers for the FastAPI app.

Register with register_exception_handlers(app). Maps domain and framework
exceptions to HTTP responses. Domain exception details are logged here and
never sent to the client.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from crm_access.core.config import get_settings
from crm_access.domain.exceptions import CrmAccessException
from crm_access.shared.context import get_actor_context

logger = logging.getLogger(__name__)

# Map domain error_code to HTTP status
_ERROR_CODE_STATUS: dict[str, int] = {
    "AUTHENTICATION_ERROR": 401,
    "INVALID_TOKEN": 403,
    "INVALID_CREDENTIALS": 401,
    "ACCOUNT_DISABLED": 401,
    "TOKEN_REVOKED": 401,
    "PERMISSION_DENIED": 403,
    "VALIDATION_ERROR": 400,
    "USER_ALREADY_EXISTS": 400,
    "RESOURCE_NOT_FOUND": 404,
    "STORE_UNAVAILABLE": 503,
}


def status_for(exc: CrmAccessException) -> int:
    """HTTP status for a domain exception (explicit override, then error_code)."""
    if exc.status_code is not None:
        return exc.status_code
    return _ERROR_CODE_STATUS.get(exc.error_code, 400)


def _crm_access_exception_handler(
    request: Request, exc: CrmAccessException
) -> JSONResponse:
    """Return JSON from CrmAccessException.to_dict() with appropriate status code."""
    status = status_for(exc)
    actor = get_actor_context()
    log = logger.error if status >= 500 else logger.warning
    log(
        "%s %s -> %s %s %s (actor=%s tenant=%s)",
        request.method,
        request.url.path,
        status,
        exc.error_code,
        exc.details,
        actor.user_id,
        actor.tenant_id,
    )
    return JSONResponse(status_code=status, content=exc.to_dict())


def _validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return 400 with validation error details; rejected input values are not echoed."""
    errors = [
        {key: value for key, value in error.items() if key != "input"}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={
            "error": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "details": jsonable_encoder(errors),
        },
    )


def _http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Return JSON for Starlette HTTP exceptions (status + detail)."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "HTTP_ERROR", "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def _generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return 500; include detail only when debug is True."""
    logger.exception("Unhandled exception: %s", exc)
    settings = get_settings()
    detail: Any = str(exc) if settings.debug else "Internal server error"
    return JSONResponse(
        status_code=500,
        content={"error": "INTERNAL_ERROR", "message": detail},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the FastAPI app.

    Handlers: CrmAccessException (and subclasses), RequestValidationError,
    StarletteHTTPException, generic Exception.
    """
    app.add_exception_handler(CrmAccessException, _crm_access_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _generic_exception_handler)
