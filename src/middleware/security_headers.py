"""Security headers middleware for the NutrIA API."""
from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

_BASE_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=(), payment=()",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add OWASP-recommended headers to all responses.

    Responses carrying credentials or personal data (auth, profile, plans)
    are marked non-cacheable.
    """

    _NO_CACHE_PREFIXES = (
        "/api/login", "/api/register", "/api/logout", "/api/auth/",
        "/api/user", "/api/user-plans", "/api/ai/",
    )

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)

        for name, value in _BASE_HEADERS.items():
            response.headers[name] = value

        path = request.url.path
        if path.startswith(self._NO_CACHE_PREFIXES):
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate"
            response.headers["Pragma"] = "no-cache"

        return response
