"""Request ID middleware.

Forwards a client supplied request id when it is safe to log (bounded
length, [A-Za-z0-9_-] only) and otherwise mints a uuid4. The id is bound to
the request context for log lines, stored on scope["state"] and echoed on
the response. Raw ASGI, so streaming responses are not buffered.
"""

import re
import uuid
from typing import Callable

from crm_access.shared.context import reset_request_id, set_request_id

REQUEST_ID_MAX_LENGTH = 64
_SAFE_REQUEST_ID = re.compile(rf"[A-Za-z0-9_-]{{1,{REQUEST_ID_MAX_LENGTH}}}")


def header_value(scope: dict, name: str) -> str | None:
    """First value of a request header (case-insensitive) from an ASGI scope."""
    wanted = name.lower().encode("latin-1")
    for key, value in scope.get("headers", []):
        if key.lower() == wanted:
            return value.decode("latin-1")
    return None


def resolve_request_id(raw: str | None) -> str:
    """Client id when safe to log, else a fresh uuid4."""
    candidate = (raw or "").strip()
    if _SAFE_REQUEST_ID.fullmatch(candidate):
        return candidate
    return str(uuid.uuid4())


def RequestIDMiddleware(app: Callable, header_name: str = "X-Request-ID") -> Callable:
    """Bind and echo the request id header. Raw ASGI."""
    response_header = header_name.lower().encode("latin-1")

    async def asgi_app(scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await app(scope, receive, send)
            return
        request_id = resolve_request_id(header_value(scope, header_name))
        scope.setdefault("state", {})["request_id"] = request_id

        async def send_with_id(message: dict) -> None:
            if message["type"] == "http.response.start":
                message["headers"] = [
                    *message.get("headers", []),
                    (response_header, request_id.encode("latin-1")),
                ]
            await send(message)

        token = set_request_id(request_id)
        try:
            await app(scope, receive, send_with_id)
        finally:
            reset_request_id(token)

    return asgi_app
