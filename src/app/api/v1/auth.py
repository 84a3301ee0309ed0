"""Authentication API endpoints.

Provides login, token refresh, current user info, and API key management.
All endpoints except login and refresh require a valid JWT token.
"""

from __future__ import annotations

import secrets

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.app.api.deps import get_current_user, get_db
from src.app.core.organization import OrganizationContext, get_current_organization
from src.app.core.security import (
    create_access_token,
    create_refresh_token,
    hash_password,
    verify_password,
    verify_token,
)
from src.app.models.organization import ApiKey, User
from src.app.schemas.auth import (
    ApiKeyCreate,
    ApiKeyResponse,
    LoginRequest,
    TokenRefreshRequest,
    TokenResponse,
    UserResponse,
)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


def _issue_tokens(user: User, org: OrganizationContext) -> TokenResponse:
    token_data = {
        "sub": str(user.id),
        "org_id": str(user.organization_id),
        "org_slug": org.organization_slug,
        "email": user.email,
        "role": user.role,
    }
    return TokenResponse(
        access_token=create_access_token(token_data),
        refresh_token=create_refresh_token(token_data),
    )


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Authenticate a user and return JWT tokens.

    Requires X-Organization-ID header (or organization context from
    middleware) to scope the user lookup to the correct organization.
    """
    org = get_current_organization()

    result = await db.execute(
        select(User).where(
            func.lower(User.email) == body.email.lower(),
            User.organization_id == org.organization_id,
            User.is_active == True,  # noqa: E712
        )
    )
    user = result.scalar_one_or_none()

    if not user or not user.hashed_password:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    if not verify_password(body.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    return _issue_tokens(user, org)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(body: TokenRefreshRequest, db: AsyncSession = Depends(get_db)):
    """Issue new tokens from a valid refresh token."""
    payload = verify_token(body.refresh_token, token_type="refresh")

    org = get_current_organization()
    result = await db.execute(
        select(User).where(
            User.id == payload["sub"],
            User.organization_id == org.organization_id,
            User.is_active == True,  # noqa: E712
        )
    )
    user = result.scalar_one_or_none()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )

    return _issue_tokens(user, org)


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """Return the authenticated user with organization claims."""
    org = get_current_organization()
    return UserResponse(
        id=str(current_user.id),
        email=current_user.email,
        name=current_user.name,
        role=current_user.role,
        org_id=str(current_user.organization_id),
        org_slug=org.organization_slug,
    )


@router.post("/api-keys", response_model=ApiKeyResponse, status_code=status.HTTP_201_CREATED)
async def create_api_key(
    body: ApiKeyCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a new API key for the authenticated user.

    The raw key is returned only once at creation time. Store it securely.
    """
    org = get_current_organization()

    raw_key = secrets.token_urlsafe(32)
    api_key = ApiKey(
        organization_id=org.organization_id,
        user_id=current_user.id,
        key_hash=hash_password(raw_key),
        name=body.name,
    )
    db.add(api_key)
    await db.commit()
    await db.refresh(api_key)

    return ApiKeyResponse(
        id=str(api_key.id),
        name=api_key.name,
        key=raw_key,
        created_at=api_key.created_at,
    )
