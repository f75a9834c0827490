"""
HTTP metrics middleware for the Prompt Builder API.

Tracks request count and duration per method/path/status.
Zero overhead when METRICS_ENABLED=false (default).
"""

import re
import time
import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger(__name__)

_NUMERIC_SEGMENT = re.compile(r"/\d+(?=/|$)")


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to collect HTTP request metrics.

    Numeric path segments (e.g. /api/prompts/42) are collapsed to {id} so
    per-path labels stay low-cardinality.
    """

    _SKIP_PATHS = frozenset({"/health", "/readiness", "/metrics", "/favicon.ico"})

    def _normalize_path(self, path: str) -> str:
        return _NUMERIC_SEGMENT.sub("/{id}", path)

    async def dispatch(self, request: Request, call_next):
        from metrics import METRICS_ENABLED, track_request

        if not METRICS_ENABLED:
            return await call_next(request)

        start = time.time()
        response = await call_next(request)
        duration = time.time() - start

        path = request.url.path
        if path not in self._SKIP_PATHS:
            track_request(request.method, self._normalize_path(path), response.status_code, duration)

        return response
