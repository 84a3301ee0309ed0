"""REST API endpoints for the show catalogue and show monetization.

Provides CRUD for shows plus monetization settings, measured audience
metrics, the per-episode revenue estimate, and the talent revenue
projection. All endpoints require authentication and organization context.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from pydantic import BaseModel

from src.app.api.deps import get_current_user, get_organization
from src.app.config import get_settings
from src.app.core.organization import OrganizationContext
from src.app.models.organization import User
from src.app.shows.revenue import estimate_episode_revenue, project_show_revenue
from src.app.shows.schemas import (
    MonetizationSettings,
    RevenueEstimate,
    RevenueProjection,
    RevenueSharing,
    ShowCreate,
    ShowFilter,
    ShowRead,
    ShowUpdate,
)

router = APIRouter(prefix="/api/v1/shows", tags=["shows"])


# ── Response Schemas ─────────────────────────────────────────────────────────


class ShowMetricsResponse(BaseModel):
    """Measured audience over the metrics window."""

    show_id: str
    episode_count: int
    avg_episode_downloads: float
    avg_youtube_views: float
    combined_reach: int
    window_days: int


# ── Dependency Injection Helper ──────────────────────────────────────────────


def _get_show_repository(request: Request) -> Any:
    """Retrieve ShowRepository from app.state, 503 if not available."""
    repo = getattr(request.app.state, "show_repository", None)
    if repo is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Show catalogue not initialized",
        )
    return repo


async def _require_show(repo: Any, org_id: str, show_id: str) -> ShowRead:
    show = await repo.get_show(org_id, show_id)
    if show is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Show not found: {show_id}",
        )
    return show


async def _estimate(repo: Any, org_id: str, show_id: str, monetization: MonetizationSettings) -> RevenueEstimate:
    """Revenue estimate using the override, then measured reach, then the default."""
    settings = get_settings()
    measured = None
    if monetization.avg_episode_downloads is None:
        metrics = await repo.get_show_metrics(
            org_id, show_id, window_days=settings.SHOW_METRICS_WINDOW_DAYS
        )
        if metrics.episode_count:
            measured = metrics.combined_reach
    return estimate_episode_revenue(
        monetization,
        measured_downloads=measured,
        default_downloads=settings.DEFAULT_EPISODE_DOWNLOADS,
    )


# ── Show Endpoints ───────────────────────────────────────────────────────────


@router.post("", response_model=ShowRead, status_code=201)
async def create_show(
    body: ShowCreate,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> ShowRead:
    """Create a show. Initial monetization settings are priced with default reach."""
    repo = _get_show_repository(request)
    estimated = None
    if body.monetization is not None:
        estimated = estimate_episode_revenue(
            body.monetization,
            default_downloads=get_settings().DEFAULT_EPISODE_DOWNLOADS,
        ).total
    return await repo.create_show(org.organization_id, body, estimated_episode_value=estimated)


@router.get("", response_model=list[ShowRead])
async def list_shows(
    request: Request,
    category: str | None = Query(default=None),
    search: str | None = Query(default=None, description="Case-insensitive name match"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> list[ShowRead]:
    repo = _get_show_repository(request)
    filters = ShowFilter(category=category, search=search, limit=limit, offset=offset)
    return await repo.list_shows(org.organization_id, filters)


@router.get("/{show_id}", response_model=ShowRead)
async def get_show(
    show_id: str,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> ShowRead:
    repo = _get_show_repository(request)
    return await _require_show(repo, org.organization_id, show_id)


@router.patch("/{show_id}", response_model=ShowRead)
async def update_show(
    show_id: str,
    body: ShowUpdate,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> ShowRead:
    repo = _get_show_repository(request)
    try:
        return await repo.update_show(org.organization_id, show_id, body)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


@router.delete("/{show_id}", status_code=204)
async def delete_show(
    show_id: str,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> Response:
    """Soft-delete a show."""
    repo = _get_show_repository(request)
    try:
        await repo.deactivate_show(org.organization_id, show_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return Response(status_code=204)


# ── Monetization Endpoints ───────────────────────────────────────────────────


@router.get("/{show_id}/monetization", response_model=MonetizationSettings)
async def get_monetization(
    show_id: str,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> MonetizationSettings:
    repo = _get_show_repository(request)
    show = await _require_show(repo, org.organization_id, show_id)
    return show.monetization


@router.put("/{show_id}/monetization", response_model=ShowRead)
async def update_monetization(
    show_id: str,
    body: MonetizationSettings,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> ShowRead:
    """Save pricing settings and persist the resulting per-episode estimate."""
    repo = _get_show_repository(request)
    await _require_show(repo, org.organization_id, show_id)
    estimate = await _estimate(repo, org.organization_id, show_id, body)
    try:
        return await repo.update_monetization(
            org.organization_id, show_id, body, estimated_episode_value=estimate.total
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


@router.get("/{show_id}/metrics", response_model=ShowMetricsResponse)
async def get_show_metrics(
    show_id: str,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> ShowMetricsResponse:
    repo = _get_show_repository(request)
    await _require_show(repo, org.organization_id, show_id)
    metrics = await repo.get_show_metrics(
        org.organization_id, show_id, window_days=get_settings().SHOW_METRICS_WINDOW_DAYS
    )
    return ShowMetricsResponse(
        show_id=metrics.show_id,
        episode_count=metrics.episode_count,
        avg_episode_downloads=metrics.avg_episode_downloads,
        avg_youtube_views=metrics.avg_youtube_views,
        combined_reach=metrics.combined_reach,
        window_days=metrics.window_days,
    )


@router.get("/{show_id}/revenue-estimate", response_model=RevenueEstimate)
async def get_revenue_estimate(
    show_id: str,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> RevenueEstimate:
    """Per-episode ad revenue from the saved monetization settings."""
    repo = _get_show_repository(request)
    show = await _require_show(repo, org.organization_id, show_id)
    return await _estimate(repo, org.organization_id, show_id, show.monetization)


@router.get("/{show_id}/revenue-projection", response_model=RevenueProjection)
async def get_revenue_projection(
    show_id: str,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> RevenueProjection:
    repo = _get_show_repository(request)
    show = await _require_show(repo, org.organization_id, show_id)
    return project_show_revenue(
        show.estimated_episode_value,
        show.monetization.sellout_projection,
        show.revenue_sharing,
    )


@router.put("/{show_id}/revenue-sharing", response_model=RevenueProjection)
async def update_revenue_sharing(
    show_id: str,
    body: RevenueSharing,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> RevenueProjection:
    """Replace the talent sharing agreement and return the updated projection."""
    repo = _get_show_repository(request)
    try:
        show = await repo.update_revenue_sharing(org.organization_id, show_id, body)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return project_show_revenue(
        show.estimated_episode_value,
        show.monetization.sellout_projection,
        show.revenue_sharing,
    )
