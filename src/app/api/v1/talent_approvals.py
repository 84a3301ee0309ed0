"""REST API endpoints for talent approvals.

Talent (or an admin/master on their behalf) answer requests created when a
campaign reaches the approval milestone. Requests can also be raised
manually for a single show.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel

from src.app.api.deps import get_current_user, get_organization
from src.app.core.organization import OrganizationContext
from src.app.models.organization import User
from src.app.talent.schemas import (
    TalentApprovalCreate,
    TalentApprovalDecision,
    TalentApprovalFilter,
    TalentApprovalRead,
    TalentApprovalStatus,
)
from src.app.talent.workflow import ApprovalStateError

router = APIRouter(prefix="/api/v1/talent-approvals", tags=["talent-approvals"])


class ClearanceResponse(BaseModel):
    """Approval counts for a campaign and whether it is clear to commit."""

    campaign_id: str
    pending: int
    approved: int
    denied: int
    expired: int
    cleared: bool


class ApprovalRequestResponse(BaseModel):
    approval: TalentApprovalRead
    created: bool


def _get_talent_workflow(request: Request) -> Any:
    """Retrieve TalentApprovalWorkflow from app.state, 503 if not available."""
    workflow = getattr(request.app.state, "talent_workflow", None)
    if workflow is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Talent approvals not initialized",
        )
    return workflow


@router.get("", response_model=list[TalentApprovalRead])
async def list_talent_approvals(
    request: Request,
    status_filter: TalentApprovalStatus | None = Query(default=None, alias="status"),
    campaign_id: str | None = Query(default=None),
    mine: bool = Query(default=False, description="Only requests addressed to me"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> list[TalentApprovalRead]:
    workflow = _get_talent_workflow(request)
    filters = TalentApprovalFilter(
        status=status_filter,
        campaign_id=campaign_id,
        talent_id=str(user.id) if mine else None,
        limit=limit,
        offset=offset,
    )
    return await workflow.list_approvals(org.organization_id, filters)


@router.post("", response_model=ApprovalRequestResponse, status_code=201)
async def request_talent_approval(
    body: TalentApprovalCreate,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> ApprovalRequestResponse:
    """Request approval from one talent. Returns the existing request if active."""
    workflow = _get_talent_workflow(request)
    approval, created = await workflow.request_approval(
        org.organization_id, body, requested_by=str(user.id)
    )
    return ApprovalRequestResponse(approval=approval, created=created)


@router.post("/{approval_id}/respond", response_model=TalentApprovalRead)
async def respond_to_talent_approval(
    approval_id: str,
    body: TalentApprovalDecision,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> TalentApprovalRead:
    workflow = _get_talent_workflow(request)
    try:
        return await workflow.respond(
            org.organization_id,
            approval_id,
            body,
            responder_id=str(user.id),
            responder_role=user.role,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except PermissionError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    except ApprovalStateError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))


@router.post("/campaigns/{campaign_id}/request", response_model=list[TalentApprovalRead])
async def request_campaign_approvals(
    campaign_id: str,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> list[TalentApprovalRead]:
    """Request approvals for every show on the campaign's proposals."""
    workflow = _get_talent_workflow(request)
    try:
        return await workflow.request_for_campaign(
            org.organization_id, campaign_id, requested_by=str(user.id)
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


@router.get("/campaigns/{campaign_id}/clearance", response_model=ClearanceResponse)
async def get_campaign_clearance(
    campaign_id: str,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> ClearanceResponse:
    workflow = _get_talent_workflow(request)
    clearance = await workflow.get_clearance(org.organization_id, campaign_id)
    return ClearanceResponse(
        campaign_id=clearance.campaign_id,
        pending=clearance.pending,
        approved=clearance.approved,
        denied=clearance.denied,
        expired=clearance.expired,
        cleared=clearance.cleared,
    )
