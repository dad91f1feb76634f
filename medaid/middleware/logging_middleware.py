"""Middleware for logging HTTP requests and responses."""
import logging
import time
import uuid
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from medaid.utils.logging_config import get_logger, request_id_context, log_with_context

logger = get_logger(__name__)

# Paths polled by load balancers; logged at DEBUG only
QUIET_PATHS = {"/health"}


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to log all HTTP requests and responses.

    Each request gets a request ID (reusing an inbound ``X-Request-ID`` when a
    caller or provider supplies one) that is attached to every log line
    emitted while the request is handled and echoed in the response headers.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        token = request_id_context.set(request_id)
        request.state.request_id = request_id

        start_time = time.perf_counter()

        method = request.method
        path = request.url.path
        client_ip = request.client.host if request.client else "unknown"
        quiet = path in QUIET_PATHS

        log_with_context(
            logger,
            logging.DEBUG if quiet else logging.INFO,
            f"Incoming request: {method} {path}",
            request_id=request_id,
            method=method,
            path=path,
            query_params=dict(request.query_params),
            client_ip=client_ip,
            user_agent=request.headers.get("user-agent", "unknown"),
        )

        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.perf_counter() - start_time
            logger.error(
                f"Request failed: {method} {path} - {str(e)}",
                exc_info=True,
                extra={
                    "extra_fields": {
                        "request_id": request_id,
                        "method": method,
                        "path": path,
                        "duration_ms": round(duration * 1000, 2),
                        "client_ip": client_ip,
                    }
                }
            )
            raise
        finally:
            request_id_context.reset(token)

        duration = time.perf_counter() - start_time
        status_code = response.status_code
        response.headers["X-Request-ID"] = request_id

        if status_code >= 500:
            log_level = logging.ERROR
        elif status_code >= 400:
            log_level = logging.WARNING
        elif quiet:
            log_level = logging.DEBUG
        else:
            log_level = logging.INFO

        log_with_context(
            logger,
            log_level,
            f"Request completed: {method} {path} - {status_code}",
            request_id=request_id,
            method=method,
            path=path,
            status_code=status_code,
            duration_ms=round(duration * 1000, 2),
            client_ip=client_ip,
        )

        return response
