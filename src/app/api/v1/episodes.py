"""REST API endpoints for episodes."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status

from src.app.api.deps import get_current_user, get_organization
from src.app.core.organization import OrganizationContext
from src.app.models.organization import User
from src.app.shows.schemas import (
    EpisodeCreate,
    EpisodeFilter,
    EpisodeRead,
    EpisodeStatus,
    EpisodeUpdate,
)

router = APIRouter(prefix="/api/v1/episodes", tags=["episodes"])


def _get_show_repository(request: Request) -> Any:
    """Retrieve ShowRepository from app.state, 503 if not available."""
    repo = getattr(request.app.state, "show_repository", None)
    if repo is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Show catalogue not initialized",
        )
    return repo


@router.post("", response_model=EpisodeRead, status_code=201)
async def create_episode(
    body: EpisodeCreate,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> EpisodeRead:
    """Create an episode; the show must exist and be active."""
    repo = _get_show_repository(request)
    try:
        return await repo.create_episode(org.organization_id, body)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


@router.get("", response_model=list[EpisodeRead])
async def list_episodes(
    request: Request,
    show_id: str | None = Query(default=None),
    status_filter: EpisodeStatus | None = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> list[EpisodeRead]:
    repo = _get_show_repository(request)
    filters = EpisodeFilter(show_id=show_id, status=status_filter, limit=limit, offset=offset)
    return await repo.list_episodes(org.organization_id, filters)


@router.get("/{episode_id}", response_model=EpisodeRead)
async def get_episode(
    episode_id: str,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> EpisodeRead:
    repo = _get_show_repository(request)
    episode = await repo.get_episode(org.organization_id, episode_id)
    if episode is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Episode not found: {episode_id}",
        )
    return episode


@router.patch("/{episode_id}", response_model=EpisodeRead)
async def update_episode(
    episode_id: str,
    body: EpisodeUpdate,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> EpisodeRead:
    repo = _get_show_repository(request)
    try:
        return await repo.update_episode(org.organization_id, episode_id, body)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


@router.delete("/{episode_id}", status_code=204)
async def delete_episode(
    episode_id: str,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> Response:
    repo = _get_show_repository(request)
    try:
        await repo.deactivate_episode(org.organization_id, episode_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return Response(status_code=204)
