"""Dashboard summary endpoint."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from src.app.api.deps import get_current_user, get_organization
from src.app.core.organization import OrganizationContext
from src.app.dashboard.service import DashboardSummary
from src.app.models.organization import User

router = APIRouter(prefix="/api/v1/dashboard", tags=["dashboard"])


def _get_dashboard_service(request: Request) -> Any:
    """Retrieve DashboardService from app.state, 503 if not available."""
    service = getattr(request.app.state, "dashboard_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Dashboard not initialized",
        )
    return service


@router.get("", response_model=DashboardSummary)
async def get_dashboard(
    request: Request,
    refresh: bool = Query(default=False, description="Bypass the cached summary"),
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> DashboardSummary:
    service = _get_dashboard_service(request)
    return await service.get_summary(org.organization_id, use_cache=not refresh)
