"""Talent approval workflow.

TalentApprovalWorkflow ties together the approval repository, the campaign
and show repositories (to find which talent a campaign airs with), and the
notifier. Every operation is a plain sequence: validate, write, notify,
return.

Milestones (thresholds from settings):
- Campaign probability reaching TALENT_APPROVAL_THRESHOLD creates one request
  per (show, talent) among the campaign's proposal items.
- Reaching CAMPAIGN_COMMIT_THRESHOLD is refused while any request is denied,
  unless the acting user is an admin or master.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import structlog

from src.app.core.monitoring import talent_approvals_total
from src.app.models.organization import UserRole
from src.app.notifications.service import NotificationService
from src.app.talent.schemas import (
    CampaignClearance,
    SpotType,
    TalentApprovalCreate,
    TalentApprovalDecision,
    TalentApprovalFilter,
    TalentApprovalRead,
    TalentApprovalStatus,
)

logger = structlog.get_logger(__name__)

OVERRIDE_ROLES = (UserRole.ADMIN.value, UserRole.MASTER.value)


class ApprovalStateError(Exception):
    """Raised when a talent approval cannot be answered in its current state."""


class CampaignGateError(Exception):
    """Raised when a campaign milestone is blocked by talent approvals."""


class TalentApprovalWorkflow:
    """Request, answer, and gate on talent approvals.

    Args:
        repository: TalentApprovalRepository (or compatible test double).
        notifier: NotificationService for talent / requester notifications.
        campaign_repository: Used to read the campaign and its proposal items.
        show_repository: Used to resolve each show's talent.
        expiry_days: Lifetime of a pending request.
        commit_threshold: Probability milestone gated on approvals (for messages).
    """

    def __init__(
        self,
        repository: Any,
        notifier: NotificationService,
        campaign_repository: Any = None,
        show_repository: Any = None,
        expiry_days: int = 7,
        commit_threshold: int = 90,
    ) -> None:
        self._repository = repository
        self._notifier = notifier
        self._campaigns = campaign_repository
        self._shows = show_repository
        self._expiry_days = expiry_days
        self._commit_threshold = commit_threshold

    # ── Requests ────────────────────────────────────────────────────────────

    async def request_approval(
        self,
        org_id: str,
        data: TalentApprovalCreate,
        requested_by: str | None,
    ) -> tuple[TalentApprovalRead, bool]:
        """Create a pending request unless an active one already exists.

        Returns:
            (approval, created) -- the existing request and False when a
            pending or approved one was found.
        """
        existing = await self._repository.find_active(
            org_id, data.campaign_id, data.show_id, data.talent_id
        )
        if existing is not None:
            return existing, False

        expires_at = datetime.now(timezone.utc) + timedelta(days=self._expiry_days)
        approval = await self._repository.create_approval(
            org_id, data, requested_by=requested_by, expires_at=expires_at
        )
        talent_approvals_total.labels(status=TalentApprovalStatus.PENDING.value).inc()
        logger.info(
            "talent_approval.requested",
            org_id=org_id,
            approval_id=approval.id,
            campaign_id=data.campaign_id,
            show_id=data.show_id,
            talent_id=data.talent_id,
        )

        campaign_name = data.summary_data.get("campaign_name") or data.campaign_id
        await self._notifier.notify(
            org_id,
            data.talent_id,
            "Talent Approval Required",
            f'Your approval is needed for campaign "{campaign_name}"',
            type="approval",
            category="talent",
            action_url=f"/talent/approvals/{approval.id}",
            metadata={
                "campaign_id": data.campaign_id,
                "show_id": data.show_id,
                "approval_id": approval.id,
            },
        )
        return approval, True

    async def request_for_campaign(
        self, org_id: str, campaign_id: str, requested_by: str | None
    ) -> list[TalentApprovalRead]:
        """Create requests for every show with talent on the campaign's proposals.

        Returns only the newly created requests.
        """
        campaign = await self._campaigns.get_campaign(org_id, campaign_id)
        if campaign is None:
            raise ValueError(f"Campaign not found: {campaign_id}")

        items = await self._campaigns.list_campaign_items(org_id, campaign_id)
        by_show: dict[str, list] = {}
        for item in items:
            by_show.setdefault(item.show_id, []).append(item)

        created: list[TalentApprovalRead] = []
        for show_id, show_items in by_show.items():
            show = await self._shows.get_show(org_id, show_id)
            if show is None or not show.talent_user_id:
                continue

            spot_count = sum(i.quantity for i in show_items)
            air_dates = sorted(i.air_date for i in show_items if i.air_date is not None)
            summary = {
                "campaign_name": campaign.name,
                "advertiser_name": campaign.advertiser_name,
                "agency_name": campaign.agency_name,
                "show_name": show.name,
                "spot_count": spot_count,
                "first_air_date": air_dates[0].isoformat() if air_dates else None,
                "last_air_date": air_dates[-1].isoformat() if air_dates else None,
                "placement_types": sorted({i.placement_type.value for i in show_items}),
                "budget": campaign.budget,
            }
            approval, was_created = await self.request_approval(
                org_id,
                TalentApprovalCreate(
                    campaign_id=campaign_id,
                    show_id=show_id,
                    talent_id=show.talent_user_id,
                    spot_type=SpotType.HOST_READ if spot_count > 0 else SpotType.ENDORSEMENT,
                    summary_data=summary,
                ),
                requested_by=requested_by,
            )
            if was_created:
                created.append(approval)

        logger.info(
            "talent_approval.campaign_requests_created",
            org_id=org_id,
            campaign_id=campaign_id,
            count=len(created),
        )
        return created

    # ── Responses ───────────────────────────────────────────────────────────

    async def respond(
        self,
        org_id: str,
        approval_id: str,
        decision: TalentApprovalDecision,
        responder_id: str,
        responder_role: str | None = None,
    ) -> TalentApprovalRead:
        """Record the talent's approval or denial and notify the requester.

        Raises:
            ValueError: If the request does not exist.
            PermissionError: If the responder is neither the talent nor an admin.
            ApprovalStateError: If the request is no longer pending or has expired.
        """
        approval = await self._repository.get_approval(org_id, approval_id)
        if approval is None:
            raise ValueError(f"Talent approval not found: {approval_id}")

        if approval.talent_id != responder_id and responder_role not in OVERRIDE_ROLES:
            raise PermissionError("Only the requested talent can respond")

        if approval.status != TalentApprovalStatus.PENDING:
            raise ApprovalStateError(
                f"Talent approval already {approval.status.value}"
            )

        now = datetime.now(timezone.utc)
        if approval.expires_at is not None and approval.expires_at < now:
            await self._repository.record_response(
                org_id, approval_id, TalentApprovalStatus.EXPIRED, responded_by=None
            )
            talent_approvals_total.labels(status=TalentApprovalStatus.EXPIRED.value).inc()
            raise ApprovalStateError("Talent approval has expired")

        updated = await self._repository.record_response(
            org_id,
            approval_id,
            decision.status,
            responded_by=responder_id,
            comments=decision.comments,
            denial_reason=decision.denial_reason,
        )
        talent_approvals_total.labels(status=decision.status.value).inc()
        logger.info(
            "talent_approval.responded",
            org_id=org_id,
            approval_id=approval_id,
            status=decision.status.value,
        )

        if updated.requested_by:
            verb = "approved" if decision.status == TalentApprovalStatus.APPROVED else "denied"
            campaign_name = updated.summary_data.get("campaign_name") or updated.campaign_id
            message = f'Talent {verb} campaign "{campaign_name}"'
            if decision.denial_reason:
                message = f"{message}: {decision.denial_reason}"
            await self._notifier.notify(
                org_id,
                updated.requested_by,
                f"Talent Approval {verb.capitalize()}",
                message,
                type="approval",
                category="talent",
                action_url=f"/campaigns/{updated.campaign_id}",
                metadata={"approval_id": approval_id, "status": decision.status.value},
            )
        return updated

    # ── Queries & Gates ─────────────────────────────────────────────────────

    async def list_approvals(
        self, org_id: str, filters: TalentApprovalFilter | None = None
    ) -> list[TalentApprovalRead]:
        """List requests after expiring stale pending ones."""
        expired = await self._repository.expire_stale(org_id)
        if expired:
            talent_approvals_total.labels(status=TalentApprovalStatus.EXPIRED.value).inc(expired)
            logger.info("talent_approval.expired", org_id=org_id, count=expired)
        return await self._repository.list_approvals(org_id, filters)

    async def get_clearance(self, org_id: str, campaign_id: str) -> CampaignClearance:
        return await self._repository.get_clearance(org_id, campaign_id)

    async def check_commit_gate(
        self, org_id: str, campaign_id: str, user_role: str | None
    ) -> CampaignClearance:
        """Refuse the commit milestone while any talent approval is denied.

        Admins and masters bypass the gate.

        Raises:
            CampaignGateError: If denied approvals exist.
        """
        clearance = await self._repository.get_clearance(org_id, campaign_id)
        if user_role in OVERRIDE_ROLES:
            return clearance
        if clearance.pending:
            logger.warning(
                "talent_approval.pending_at_commit",
                org_id=org_id,
                campaign_id=campaign_id,
                pending=clearance.pending,
            )
        if clearance.denied:
            raise CampaignGateError(
                f"Cannot proceed to {self._commit_threshold}%: "
                f"{clearance.denied} talent approvals were denied"
            )
        return clearance
