"""User management endpoints, restricted to admins and masters."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.app.api.deps import get_db, get_organization, require_roles
from src.app.core.organization import OrganizationContext
from src.app.core.security import hash_password
from src.app.models.organization import User, UserRole
from src.app.schemas.auth import UserCreate, UserRead, UserUpdate

router = APIRouter(prefix="/api/v1/users", tags=["users"])

require_admin = require_roles(UserRole.ADMIN.value, UserRole.MASTER.value)


def _to_read(user: User) -> UserRead:
    return UserRead(
        id=str(user.id),
        email=user.email,
        name=user.name,
        role=user.role,
        is_active=user.is_active,
        created_at=user.created_at,
    )


async def _get_user(db: AsyncSession, org_id: str, user_id: str) -> User:
    try:
        user_uuid = uuid.UUID(user_id)
    except ValueError:
        user_uuid = None
    user = None
    if user_uuid is not None:
        result = await db.execute(
            select(User).where(User.id == user_uuid, User.organization_id == org_id)
        )
        user = result.scalar_one_or_none()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User not found: {user_id}",
        )
    return user


@router.get("", response_model=list[UserRead])
async def list_users(
    include_inactive: bool = Query(default=False),
    admin: User = Depends(require_admin),
    org: OrganizationContext = Depends(get_organization),
    db: AsyncSession = Depends(get_db),
) -> list[UserRead]:
    stmt = select(User).where(User.organization_id == org.organization_id)
    if not include_inactive:
        stmt = stmt.where(User.is_active == True)  # noqa: E712
    result = await db.execute(stmt.order_by(User.email))
    return [_to_read(u) for u in result.scalars().all()]


@router.post("", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserCreate,
    admin: User = Depends(require_admin),
    org: OrganizationContext = Depends(get_organization),
    db: AsyncSession = Depends(get_db),
) -> UserRead:
    """Create a user. Emails are unique per organization, case-insensitively."""
    existing = await db.execute(
        select(User.id).where(
            func.lower(User.email) == body.email.lower(),
            User.organization_id == org.organization_id,
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"User with email {body.email} already exists",
        )

    user = User(
        organization_id=org.organization_id,
        email=body.email.lower(),
        name=body.name,
        hashed_password=hash_password(body.password),
        role=body.role.value,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return _to_read(user)


@router.patch("/{user_id}", response_model=UserRead)
async def update_user(
    user_id: str,
    body: UserUpdate,
    admin: User = Depends(require_admin),
    org: OrganizationContext = Depends(get_organization),
    db: AsyncSession = Depends(get_db),
) -> UserRead:
    user = await _get_user(db, org.organization_id, user_id)
    if body.role is not None:
        if body.role == UserRole.MASTER and admin.role != UserRole.MASTER.value:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only a master can grant the master role",
            )
        user.role = body.role.value
    if body.name is not None:
        user.name = body.name
    if body.is_active is not None:
        user.is_active = body.is_active
    await db.commit()
    await db.refresh(user)
    return _to_read(user)


@router.delete("/{user_id}", status_code=204)
async def deactivate_user(
    user_id: str,
    admin: User = Depends(require_admin),
    org: OrganizationContext = Depends(get_organization),
    db: AsyncSession = Depends(get_db),
) -> Response:
    user = await _get_user(db, org.organization_id, user_id)
    if user.id == admin.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot deactivate yourself",
        )
    user.is_active = False
    await db.commit()
    return Response(status_code=204)
