"""Structured request logging middleware.

Every request gets an X-Request-ID. The id, the organization and the user
are bound into structlog's context variables for the duration of the
request, so domain events such as ``invoice.sent`` or
``talent_approval.responded`` carry them without passing them around.

One ``request_completed`` line is written per request. Probe paths
(/health, /metrics) are logged at debug level.
"""

from __future__ import annotations

import time
import uuid

import structlog
from fastapi import Request, Response
from jose import JWTError, jwt
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from src.app.config import Environment, get_settings

logger = structlog.get_logger(__name__)

QUIET_PATHS = ("/health", "/metrics")


def configure_structlog() -> None:
    """Configure structlog processors based on environment."""
    settings = get_settings()

    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if settings.ENVIRONMENT == Environment.production:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _bearer_claims(request: Request) -> dict:
    """JWT claims for log context. Empty when absent or invalid."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return {}
    settings = get_settings()
    try:
        return jwt.decode(
            auth_header[7:], settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
        )
    except JWTError:
        return {}


class LoggingMiddleware(BaseHTTPMiddleware):
    """Bind request context for structlog and log each request with timing.

    Runs outside OrganizationAuthMiddleware, so the organization is taken
    from the token claims or the X-Organization-ID header.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        claims = _bearer_claims(request)
        path = request.url.path

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            org_id=claims.get("org_id") or request.headers.get("X-Organization-ID"),
            user_id=claims.get("sub"),
        )

        start_time = time.monotonic()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request_error",
                method=request.method,
                path=path,
                status_code=500,
                duration_ms=round((time.monotonic() - start_time) * 1000, 2),
            )
            raise
        duration_ms = round((time.monotonic() - start_time) * 1000, 2)

        response.headers["X-Request-ID"] = request_id

        if response.status_code >= 500:
            log_method = logger.error
        elif response.status_code >= 400:
            log_method = logger.warning
        elif path.startswith(QUIET_PATHS):
            log_method = logger.debug
        else:
            log_method = logger.info

        log_method(
            "request_completed",
            method=request.method,
            path=path,
            status_code=response.status_code,
            duration_ms=duration_ms,
        )
        structlog.contextvars.clear_contextvars()
        return response
