"""Security headers middleware for FastAPI.

Adds Content-Security-Policy, HSTS, X-Frame-Options, X-Content-Type-Options,
Referrer-Policy and Cache-Control headers to all API responses.

Configurable via SECURITY_HEADERS_ENABLED env var (default: true).
"""

import logging
import os

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger(__name__)


def is_security_headers_enabled() -> bool:
    """Check if security headers middleware is enabled via env var."""
    return os.getenv("SECURITY_HEADERS_ENABLED", "true").lower() in ("true", "1", "yes")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers to all responses.

    The API serves JSON only, so the CSP forbids every resource type and
    framing. Responses under /api/ are marked no-store since they carry
    user prompts and quota data.

    Disable via SECURITY_HEADERS_ENABLED=false in .env.
    """

    CSP_POLICY = "default-src 'none'; frame-ancestors 'none'; base-uri 'none'"

    def __init__(self, app, enabled: bool = True) -> None:
        super().__init__(app)
        self.enabled = enabled and is_security_headers_enabled()
        if not self.enabled:
            logger.info("SecurityHeadersMiddleware is DISABLED via SECURITY_HEADERS_ENABLED=false")

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        if not self.enabled:
            return response

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Content-Security-Policy"] = self.CSP_POLICY

        if request.url.path.startswith("/api/"):
            response.headers["Cache-Control"] = "no-store"

        # HSTS only behind HTTPS
        forwarded_proto = request.headers.get("X-Forwarded-Proto", "")
        if forwarded_proto == "https" or request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response
