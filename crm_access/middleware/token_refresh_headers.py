"""Token refresh hint headers.

After the authentication gate has run, request.state.token_info holds the
access token expiry (epoch ms) and whether it is near expiry. This
middleware turns that into response headers so clients can schedule a
refresh without decoding the token:

    X-Token-Expires-At: 1767225600000
    X-Token-Near-Expiry: true
    X-Token-Refresh-Recommended: true

Requests that never reached the gate (public routes) get no headers.
"""

from typing import Callable

EXPIRES_AT_HEADER = "X-Token-Expires-At"
NEAR_EXPIRY_HEADER = "X-Token-Near-Expiry"
REFRESH_RECOMMENDED_HEADER = "X-Token-Refresh-Recommended"

EXPOSED_HEADERS = [EXPIRES_AT_HEADER, NEAR_EXPIRY_HEADER, REFRESH_RECOMMENDED_HEADER]


def _bool(value: bool) -> bytes:
    return b"true" if value else b"false"


def TokenRefreshHeadersMiddleware(app: Callable) -> Callable:
    """Add X-Token-* headers when the request carried a verified access token. Raw ASGI."""

    async def asgi_app(scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await app(scope, receive, send)
            return
        state = scope.setdefault("state", {})

        async def send_wrapper(message: dict) -> None:
            info = state.get("token_info")
            if message["type"] == "http.response.start" and info:
                headers = list(message.get("headers", []))
                expires_at = info.get("expires_at")
                near_expiry = bool(info.get("near_expiry"))
                if expires_at is not None:
                    headers.append(
                        (EXPIRES_AT_HEADER.lower().encode(), str(expires_at).encode())
                    )
                headers.append((NEAR_EXPIRY_HEADER.lower().encode(), _bool(near_expiry)))
                headers.append(
                    (REFRESH_RECOMMENDED_HEADER.lower().encode(), _bool(near_expiry))
                )
                message["headers"] = headers
            await send(message)

        await app(scope, receive, send_wrapper)

    return asgi_app
