"""Security headers middleware.

Responses of this service carry tokens and user records, so they are
marked uncacheable and unframeable. HSTS is only sent when the deployment
is served over HTTPS (the same switch that makes the refresh cookie
Secure). Headers a route already set are left alone. Raw ASGI.
"""

from typing import Callable

BASE_HEADERS: dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Cache-Control": "no-store",
    "Pragma": "no-cache",
}
HSTS_HEADER = ("Strict-Transport-Security", "max-age=31536000; includeSubDomains")


def security_headers(https: bool) -> list[tuple[bytes, bytes]]:
    """Header list for responses; HSTS only when served over HTTPS."""
    headers = dict(BASE_HEADERS)
    if https:
        headers[HSTS_HEADER[0]] = HSTS_HEADER[1]
    return [(k.lower().encode(), v.encode()) for k, v in headers.items()]


def SecurityHeadersMiddleware(app: Callable, https: bool = True) -> Callable:
    """Add security headers to every HTTP response. Raw ASGI."""
    defaults = security_headers(https)

    async def asgi_app(scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await app(scope, receive, send)
            return

        async def send_with_headers(message: dict) -> None:
            if message["type"] == "http.response.start":
                present = {name.lower() for name, _ in message.get("headers", [])}
                message["headers"] = [
                    *message.get("headers", []),
                    *(h for h in defaults if h[0] not in present),
                ]
            await send(message)

        await app(scope, receive, send_with_headers)

    return asgi_app
