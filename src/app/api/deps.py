"""FastAPI dependency injection for organization-scoped resources and authentication.

These dependencies are used in endpoint function signatures to inject
the correct organization context, database session, and
authenticated user.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.app.core.database import get_org_session
from src.app.core.organization import OrganizationContext, get_current_organization
from src.app.core.security import validate_api_key, verify_token
from src.app.models.organization import User


async def get_organization() -> OrganizationContext:
    """Get the current organization context (set by OrganizationAuthMiddleware)."""
    try:
        return get_current_organization()
    except RuntimeError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing organization context",
        )


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get an organization-scoped database session."""
    async for session in get_org_session():
        yield session


async def _load_user(db: AsyncSession, user_id: str, org_id: str, detail: str) -> User:
    result = await db.execute(
        select(User).where(
            User.id == user_id,
            User.organization_id == org_id,
            User.is_active == True,  # noqa: E712
        )
    )
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)
    return user


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """Extract and validate the current user from JWT or API key.

    Checks Authorization header for Bearer JWT first, then X-API-Key header.
    Returns the User object from the database.

    Raises:
        HTTPException(401): If no valid authentication is provided.
        HTTPException(403): If the user's organization doesn't match the request context.
    """
    org = get_current_organization()

    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        payload = verify_token(auth_header[7:], token_type="access")

        token_org_id = payload.get("org_id")
        if token_org_id and token_org_id != org.organization_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Token organization does not match request organization context",
            )
        return await _load_user(db, payload["sub"], org.organization_id, "User not found or inactive")

    api_key = request.headers.get("X-API-Key")
    if api_key:
        key_info = await validate_api_key(api_key)
        if not key_info:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid API key",
            )
        if key_info["org_id"] != org.organization_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="API key organization does not match request organization context",
            )
        return await _load_user(
            db, key_info["user_id"], org.organization_id, "API key user not found or inactive"
        )

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )


def require_roles(*roles: str) -> Callable:
    """Dependency factory allowing only users whose role is in roles.

    Usage:
        user = Depends(require_roles("admin", "master"))
    """

    async def _check(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires one of roles: {', '.join(roles)}",
            )
        return user

    return _check
