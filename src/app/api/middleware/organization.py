"""Organization resolution middleware with JWT, API key, and header modes.

Resolves organization context from:
1. JWT claims in Authorization header (preferred for user requests)
2. API key in X-API-Key header (resolves organization from key lookup)
3. X-Organization-ID header (fallback for login and service-to-service calls)

After resolution, sets OrganizationContext in contextvars for the request scope.
"""

from __future__ import annotations

import json
import logging

import redis.asyncio as aioredis
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from jose import JWTError, jwt
from sqlalchemy import text
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from src.app.config import get_settings
from src.app.core.database import get_engine
from src.app.core.organization import (
    SKIP_ORGANIZATION_PATHS,
    OrganizationContext,
    reset_organization_context,
    schema_name_for_slug,
    set_organization_context,
)
from src.app.core.security import validate_api_key

logger = logging.getLogger(__name__)

LOOKUP_CACHE_TTL = 300


def lookup_cache_key(org_id: str) -> str:
    return f"organization:lookup:{org_id}"


class OrganizationAuthMiddleware(BaseHTTPMiddleware):
    """Middleware that resolves the organization from JWT claims or headers.

    Paths in SKIP_ORGANIZATION_PATHS are excluded from resolution. Requests
    whose organization cannot be resolved get a 400 response.
    """

    def __init__(self, app, redis_client: aioredis.Redis | None = None):
        super().__init__(app)
        self._redis = redis_client

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if any(path.startswith(skip) for skip in SKIP_ORGANIZATION_PATHS):
            return await call_next(request)

        org_ctx = await self._resolve_from_jwt(request)

        if not org_ctx:
            org_ctx = await self._resolve_from_api_key(request)

        if not org_ctx:
            org_ctx = await self._resolve_from_header(request)

        if not org_ctx:
            return JSONResponse(
                status_code=400,
                content={
                    "detail": (
                        "Missing organization context. Provide Authorization header with "
                        "JWT, X-API-Key, or X-Organization-ID header."
                    )
                },
            )

        token = set_organization_context(org_ctx)
        try:
            return await call_next(request)
        finally:
            reset_organization_context(token)

    async def _resolve_from_jwt(self, request: Request) -> OrganizationContext | None:
        """Extract organization context from JWT claims in Authorization header."""
        auth_header = request.headers.get("Authorization")
        if not auth_header or not auth_header.startswith("Bearer "):
            return None

        settings = get_settings()
        try:
            payload = jwt.decode(
                auth_header[7:],
                settings.JWT_SECRET_KEY,
                algorithms=[settings.JWT_ALGORITHM],
            )
        except JWTError:
            return None

        org_id = payload.get("org_id")
        org_slug = payload.get("org_slug")
        if not org_id or not org_slug:
            return None

        if not await self._verify_organization_active(org_id):
            return None

        return OrganizationContext(
            organization_id=org_id,
            organization_slug=org_slug,
            schema_name=schema_name_for_slug(org_slug),
        )

    async def _resolve_from_api_key(self, request: Request) -> OrganizationContext | None:
        api_key = request.headers.get("X-API-Key")
        if not api_key:
            return None

        try:
            result = await validate_api_key(api_key)
        except Exception as e:
            logger.warning("API key validation error: %s", e)
            return None

        if not result:
            return None

        return OrganizationContext(
            organization_id=result["org_id"],
            organization_slug=result["org_slug"],
            schema_name=schema_name_for_slug(result["org_slug"]),
        )

    async def _resolve_from_header(self, request: Request) -> OrganizationContext | None:
        org_id = request.headers.get("X-Organization-ID")
        if not org_id:
            return None
        return await self._resolve_organization_by_id(org_id)

    async def _cached_lookup(self, org_id: str) -> dict | None:
        if not self._redis:
            return None
        try:
            cached = await self._redis.get(lookup_cache_key(org_id))
        except Exception:
            logger.warning("Redis cache lookup failed for organization %s", org_id)
            return None
        return json.loads(cached) if cached else None

    async def _verify_organization_active(self, org_id: str) -> bool:
        """Check the organization exists and is active (uses cache)."""
        if await self._cached_lookup(org_id):
            return True
        return await self._resolve_organization_by_id(org_id) is not None

    async def _resolve_organization_by_id(self, org_id: str) -> OrganizationContext | None:
        """Resolve an organization by ID, using Redis cache when available."""
        data = await self._cached_lookup(org_id)
        if data:
            return OrganizationContext(
                organization_id=data["organization_id"],
                organization_slug=data["organization_slug"],
                schema_name=data["schema_name"],
            )

        engine = get_engine()
        async with engine.connect() as conn:
            result = await conn.execute(
                text(
                    "SELECT id, slug, schema_name FROM shared.organizations "
                    "WHERE id::text = :oid AND is_active = true"
                ),
                {"oid": org_id},
            )
            row = result.first()
        if not row:
            return None

        ctx = OrganizationContext(
            organization_id=str(row.id),
            organization_slug=row.slug,
            schema_name=row.schema_name,
        )
        if self._redis:
            try:
                await self._redis.set(
                    lookup_cache_key(org_id),
                    json.dumps(
                        {
                            "organization_id": ctx.organization_id,
                            "organization_slug": ctx.organization_slug,
                            "schema_name": ctx.schema_name,
                        }
                    ),
                    ex=LOOKUP_CACHE_TTL,
                )
            except Exception:
                logger.warning("Redis cache set failed for organization %s", org_id)
        return ctx
