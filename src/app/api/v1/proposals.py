"""REST API endpoints for proposals and their approval workflow.

Proposals move draft -> pending_approval -> approved | rejected. Editing a
rejected proposal returns it to draft. Approval actions are limited to
admin, master, and sales roles.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from pydantic import BaseModel, Field

from src.app.api.deps import get_current_user, get_organization, require_roles
from src.app.campaigns.proposals import ProposalStateError
from src.app.campaigns.schemas import (
    ApprovalStatus,
    ProposalCreate,
    ProposalFilter,
    ProposalRead,
    ProposalUpdate,
)
from src.app.core.organization import OrganizationContext
from src.app.models.organization import User, UserRole

router = APIRouter(prefix="/api/v1/proposals", tags=["proposals"])

APPROVER_ROLES = (UserRole.ADMIN.value, UserRole.MASTER.value, UserRole.SALES.value)


class RejectProposalRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=2000)


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


async def _transition(
    request: Request,
    org_id: str,
    proposal_id: str,
    action: str,
    user: User,
    reason: str | None = None,
) -> ProposalRead:
    repo = _get_campaign_repository(request)
    try:
        proposal = await repo.transition_proposal(
            org_id, proposal_id, action, user_id=str(user.id), reason=reason
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except ProposalStateError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))

    notifier = getattr(request.app.state, "notification_service", None)
    if notifier is not None and action in ("approve", "reject") and proposal.created_by:
        verb = "approved" if action == "approve" else "rejected"
        message = f'Proposal "{proposal.name}" was {verb}'
        if reason:
            message = f"{message}: {reason}"
        await notifier.notify(
            org_id,
            proposal.created_by,
            f"Proposal {verb.capitalize()}",
            message,
            type="approval",
            category="proposal",
            action_url=f"/proposals/{proposal.id}",
            metadata={"proposal_id": proposal.id, "status": proposal.approval_status.value},
        )
    return proposal


# ── Endpoints ────────────────────────────────────────────────────────────────


@router.post("", response_model=ProposalRead, status_code=201)
async def create_proposal(
    body: ProposalCreate,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> ProposalRead:
    repo = _get_campaign_repository(request)
    if body.campaign_id and await repo.get_campaign(org.organization_id, body.campaign_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Campaign not found: {body.campaign_id}",
        )
    return await repo.create_proposal(org.organization_id, body, created_by=str(user.id))


@router.get("", response_model=list[ProposalRead])
async def list_proposals(
    request: Request,
    approval_status: ApprovalStatus | None = Query(default=None),
    campaign_id: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> list[ProposalRead]:
    repo = _get_campaign_repository(request)
    filters = ProposalFilter(
        approval_status=approval_status, campaign_id=campaign_id, limit=limit, offset=offset
    )
    return await repo.list_proposals(org.organization_id, filters)


@router.get("/{proposal_id}", response_model=ProposalRead)
async def get_proposal(
    proposal_id: str,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> ProposalRead:
    repo = _get_campaign_repository(request)
    proposal = await repo.get_proposal(org.organization_id, proposal_id)
    if proposal is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Proposal not found: {proposal_id}",
        )
    return proposal


@router.patch("/{proposal_id}", response_model=ProposalRead)
async def update_proposal(
    proposal_id: str,
    body: ProposalUpdate,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> ProposalRead:
    """Edit a draft or rejected proposal."""
    repo = _get_campaign_repository(request)
    try:
        return await repo.update_proposal(org.organization_id, proposal_id, body)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except ProposalStateError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))


@router.post("/{proposal_id}/submit", response_model=ProposalRead)
async def submit_proposal(
    proposal_id: str,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> ProposalRead:
    return await _transition(request, org.organization_id, proposal_id, "submit", user)


@router.post("/{proposal_id}/approve", response_model=ProposalRead)
async def approve_proposal(
    proposal_id: str,
    request: Request,
    user: User = Depends(require_roles(*APPROVER_ROLES)),
    org: OrganizationContext = Depends(get_organization),
) -> ProposalRead:
    return await _transition(request, org.organization_id, proposal_id, "approve", user)


@router.post("/{proposal_id}/reject", response_model=ProposalRead)
async def reject_proposal(
    proposal_id: str,
    body: RejectProposalRequest,
    request: Request,
    user: User = Depends(require_roles(*APPROVER_ROLES)),
    org: OrganizationContext = Depends(get_organization),
) -> ProposalRead:
    return await _transition(
        request, org.organization_id, proposal_id, "reject", user, reason=body.reason
    )


@router.delete("/{proposal_id}", status_code=204)
async def delete_proposal(
    proposal_id: str,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> Response:
    """Delete a draft proposal."""
    repo = _get_campaign_repository(request)
    try:
        await repo.delete_proposal(org.organization_id, proposal_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except ProposalStateError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return Response(status_code=204)
