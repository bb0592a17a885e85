"""HTTP middleware: request ID, security headers, token refresh hints.

Applied in main app; order matters (last added = outermost).
"""

from crm_access.middleware.request_id import RequestIDMiddleware
from crm_access.middleware.security_headers import SecurityHeadersMiddleware
from crm_access.middleware.token_refresh_headers import (
    EXPOSED_HEADERS,
    TokenRefreshHeadersMiddleware,
)

__all__ = [
    "EXPOSED_HEADERS",
    "RequestIDMiddleware",
    "SecurityHeadersMiddleware",
    "TokenRefreshHeadersMiddleware",
]
