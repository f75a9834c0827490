"""Security and metrics middleware for the Prompt Builder API."""

from middleware.security import SecurityHeadersMiddleware  # noqa: F401
from middleware.metrics import MetricsMiddleware  # noqa: F401

__all__ = ["SecurityHeadersMiddleware", "MetricsMiddleware"]
