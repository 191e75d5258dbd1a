"""HTTP middleware."""

from instancevol.app.middleware.logging import LoggingMiddleware

__all__ = ["LoggingMiddleware"]
