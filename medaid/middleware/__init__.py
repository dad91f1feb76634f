"""HTTP middleware."""
from medaid.middleware.logging_middleware import LoggingMiddleware

__all__ = ["LoggingMiddleware"]
