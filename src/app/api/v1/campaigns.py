"""REST API endpoints for campaigns.

Probability changes drive the talent approval milestones:
- crossing TALENT_APPROVAL_THRESHOLD requests approval from each show's talent
- crossing CAMPAIGN_COMMIT_THRESHOLD is refused (409) while any approval is denied
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status

from src.app.api.deps import get_current_user, get_organization
from src.app.campaigns.schemas import (
    CampaignCreate,
    CampaignFilter,
    CampaignRead,
    CampaignStatus,
    CampaignUpdate,
)
from src.app.config import get_settings
from src.app.core.organization import OrganizationContext
from src.app.models.organization import User
from src.app.talent.workflow import CampaignGateError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/campaigns", tags=["campaigns"])


# ── Dependency Injection Helpers ─────────────────────────────────────────────


def _get_campaign_repository(request: Request) -> Any:
    """Retrieve CampaignRepository from app.state, 503 if not available."""
    repo = getattr(request.app.state, "campaign_repository", None)
    if repo is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Campaign management not initialized",
        )
    return repo


def _get_talent_workflow(request: Request) -> Any:
    """Retrieve TalentApprovalWorkflow from app.state, 503 if not available."""
    workflow = getattr(request.app.state, "talent_workflow", None)
    if workflow is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Talent approvals not initialized",
        )
    return workflow


def _crossed(old: int, new: int, threshold: int) -> bool:
    """True when probability moves from below threshold to at or above it."""
    return old < threshold <= new


# ── Endpoints ────────────────────────────────────────────────────────────────


@router.post("", response_model=CampaignRead, status_code=201)
async def create_campaign(
    body: CampaignCreate,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> CampaignRead:
    repo = _get_campaign_repository(request)
    return await repo.create_campaign(org.organization_id, body, created_by=str(user.id))


@router.get("", response_model=list[CampaignRead])
async def list_campaigns(
    request: Request,
    status_filter: CampaignStatus | None = Query(default=None, alias="status"),
    advertiser: str | None = Query(default=None, description="Advertiser name contains"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> list[CampaignRead]:
    repo = _get_campaign_repository(request)
    filters = CampaignFilter(
        status=status_filter, advertiser_name=advertiser, limit=limit, offset=offset
    )
    return await repo.list_campaigns(org.organization_id, filters)


@router.get("/{campaign_id}", response_model=CampaignRead)
async def get_campaign(
    campaign_id: str,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> CampaignRead:
    repo = _get_campaign_repository(request)
    campaign = await repo.get_campaign(org.organization_id, campaign_id)
    if campaign is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Campaign not found: {campaign_id}",
        )
    return campaign


@router.patch("/{campaign_id}", response_model=CampaignRead)
async def update_campaign(
    campaign_id: str,
    body: CampaignUpdate,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> CampaignRead:
    """Update a campaign, applying the probability milestones."""
    repo = _get_campaign_repository(request)
    settings = get_settings()

    current = await repo.get_campaign(org.organization_id, campaign_id)
    if current is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Campaign not found: {campaign_id}",
        )

    old_probability = current.probability
    new_probability = body.probability if body.probability is not None else old_probability

    if _crossed(old_probability, new_probability, settings.CAMPAIGN_COMMIT_THRESHOLD):
        workflow = _get_talent_workflow(request)
        try:
            await workflow.check_commit_gate(org.organization_id, campaign_id, user.role)
        except CampaignGateError as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))

    try:
        updated = await repo.update_campaign(org.organization_id, campaign_id, body)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))

    if _crossed(old_probability, new_probability, settings.TALENT_APPROVAL_THRESHOLD):
        workflow = getattr(request.app.state, "talent_workflow", None)
        if workflow is None:
            logger.warning(
                "campaign.talent_requests_skipped",
                org_id=org.organization_id,
                campaign_id=campaign_id,
                reason="talent workflow not initialized",
            )
        else:
            try:
                await workflow.request_for_campaign(
                    org.organization_id, campaign_id, requested_by=str(user.id)
                )
            except Exception:
                logger.warning(
                    "campaign.talent_requests_failed",
                    org_id=org.organization_id,
                    campaign_id=campaign_id,
                    exc_info=True,
                )

    return updated


@router.delete("/{campaign_id}", status_code=204)
async def delete_campaign(
    campaign_id: str,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> Response:
    """Soft-delete a campaign."""
    repo = _get_campaign_repository(request)
    try:
        await repo.deactivate_campaign(org.organization_id, campaign_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return Response(status_code=204)
