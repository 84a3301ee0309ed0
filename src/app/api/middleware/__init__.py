"""API middleware package."""

from src.app.api.middleware.logging import LoggingMiddleware
from src.app.api.middleware.organization import OrganizationAuthMiddleware

__all__ = ["LoggingMiddleware", "OrganizationAuthMiddleware"]
