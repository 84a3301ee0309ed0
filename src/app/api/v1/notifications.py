"""REST API endpoints for the current user's notifications."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel

from src.app.api.deps import get_current_user, get_organization
from src.app.core.organization import OrganizationContext
from src.app.models.organization import User
from src.app.notifications.schemas import NotificationRead

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


class MarkAllReadResponse(BaseModel):
    updated: int


def _get_notification_repository(request: Request) -> Any:
    """Retrieve NotificationRepository from app.state, 503 if not available."""
    repo = getattr(request.app.state, "notification_repository", None)
    if repo is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Notifications not initialized",
        )
    return repo


@router.get("", response_model=list[NotificationRead])
async def list_notifications(
    request: Request,
    unread_only: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=200),
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> list[NotificationRead]:
    repo = _get_notification_repository(request)
    return await repo.list_notifications(
        org.organization_id, str(user.id), unread_only=unread_only, limit=limit
    )


@router.post("/{notification_id}/read", response_model=NotificationRead)
async def mark_notification_read(
    notification_id: str,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> NotificationRead:
    repo = _get_notification_repository(request)
    try:
        return await repo.mark_read(org.organization_id, str(user.id), notification_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


@router.post("/read-all", response_model=MarkAllReadResponse)
async def mark_all_notifications_read(
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> MarkAllReadResponse:
    repo = _get_notification_repository(request)
    updated = await repo.mark_all_read(org.organization_id, str(user.id))
    return MarkAllReadResponse(updated=updated)
