"""Shared test fixtures for the ad-ops API.

Provides:
- In-memory test doubles for every domain repository (no database needed)
- A fake Redis client for dashboard caching
- App/client factories that mount the v1 routers with mocked auth and
  organization context, and place the doubles on app.state
"""

from __future__ import annotations

import uuid
from contextlib import AsyncExitStack
from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.app.campaigns.proposals import calculate_totals, check_editable, next_status
from src.app.campaigns.schemas import (
    OPEN_CAMPAIGN_STATUSES,
    ApprovalStatus,
    CampaignCreate,
    CampaignFilter,
    CampaignRead,
    CampaignStatus,
    CampaignUpdate,
    ProposalCreate,
    ProposalFilter,
    ProposalItem,
    ProposalRead,
    ProposalUpdate,
)
from src.app.core.organization import OrganizationContext
from src.app.dashboard.service import DashboardService
from src.app.financials.invoices import apply_payment, check_transition, next_invoice_number
from src.app.financials.reports import FinancialReportService
from src.app.financials.schemas import (
    OUTSTANDING_INVOICE_STATUSES,
    ExpenseCreate,
    ExpenseFilter,
    ExpenseRead,
    ExpenseStatus,
    ExpenseUpdate,
    InvoiceCreate,
    InvoiceFilter,
    InvoiceRead,
    InvoiceStatus,
    InvoiceUpdate,
    PaymentCreate,
    PaymentFilter,
    PaymentRead,
    TopClient,
)
from src.app.notifications.schemas import NotificationCreate, NotificationRead
from src.app.notifications.service import NotificationService
from src.app.shows.schemas import (
    EpisodeCreate,
    EpisodeFilter,
    EpisodeRead,
    EpisodeStatus,
    EpisodeUpdate,
    MonetizationSettings,
    RevenueSharing,
    ShowCreate,
    ShowFilter,
    ShowMetrics,
    ShowRead,
    ShowUpdate,
)
from src.app.talent.schemas import (
    ACTIVE_APPROVAL_STATUSES,
    CampaignClearance,
    TalentApprovalCreate,
    TalentApprovalFilter,
    TalentApprovalRead,
    TalentApprovalStatus,
)
from src.app.talent.workflow import TalentApprovalWorkflow

ORG_ID = "7d1f3c52-2b0e-4f6a-9a51-0c9e8b7a6d10"
ORG_SLUG = "acme-audio"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _page(items: list, limit: int, offset: int) -> list:
    return items[offset : offset + limit]


# ── Show Catalogue ───────────────────────────────────────────────────────────


class InMemoryShowRepository:
    """In-memory ShowRepository for testing without database."""

    def __init__(self) -> None:
        self._shows: dict[str, ShowRead] = {}
        self._episodes: dict[str, EpisodeRead] = {}

    def _active_show(self, org_id: str, show_id: str) -> ShowRead | None:
        show = self._shows.get(show_id)
        if show and show.organization_id == org_id and show.is_active:
            return show
        return None

    def _active_episode(self, org_id: str, episode_id: str) -> EpisodeRead | None:
        episode = self._episodes.get(episode_id)
        if episode and episode.organization_id == org_id and episode.is_active:
            return episode
        return None

    async def create_show(
        self, org_id: str, data: ShowCreate, estimated_episode_value: float | None = None
    ) -> ShowRead:
        now = _now()
        show = ShowRead(
            id=str(uuid.uuid4()),
            organization_id=org_id,
            name=data.name,
            description=data.description,
            host_name=data.host_name,
            talent_user_id=data.talent_user_id,
            category=data.category,
            monetization=data.monetization or MonetizationSettings(),
            estimated_episode_value=estimated_episode_value if data.monetization else None,
            created_at=now,
            updated_at=now,
        )
        self._shows[show.id] = show
        return show

    async def get_show(self, org_id: str, show_id: str) -> ShowRead | None:
        return self._active_show(org_id, show_id)

    async def list_shows(self, org_id: str, filters: ShowFilter | None = None) -> list[ShowRead]:
        filters = filters or ShowFilter()
        result = [s for s in self._shows.values() if s.organization_id == org_id and s.is_active]
        if filters.category is not None:
            result = [s for s in result if s.category == filters.category]
        if filters.search:
            result = [s for s in result if filters.search.lower() in s.name.lower()]
        result.sort(key=lambda s: s.name)
        return _page(result, filters.limit, filters.offset)

    async def count_active_shows(self, org_id: str) -> int:
        return len([s for s in self._shows.values() if s.organization_id == org_id and s.is_active])

    async def update_show(self, org_id: str, show_id: str, data: ShowUpdate) -> ShowRead:
        show = self._active_show(org_id, show_id)
        if show is None:
            raise ValueError(f"Show not found: org={org_id}, id={show_id}")
        updated = show.model_copy(
            update={**data.model_dump(exclude_unset=True), "updated_at": _now()}
        )
        self._shows[show_id] = updated
        return updated

    async def update_monetization(
        self,
        org_id: str,
        show_id: str,
        settings: MonetizationSettings,
        estimated_episode_value: float,
    ) -> ShowRead:
        show = self._active_show(org_id, show_id)
        if show is None:
            raise ValueError(f"Show not found: org={org_id}, id={show_id}")
        updated = show.model_copy(
            update={
                "monetization": settings,
                "estimated_episode_value": estimated_episode_value,
                "updated_at": _now(),
            }
        )
        self._shows[show_id] = updated
        return updated

    async def update_revenue_sharing(
        self, org_id: str, show_id: str, sharing: RevenueSharing
    ) -> ShowRead:
        show = self._active_show(org_id, show_id)
        if show is None:
            raise ValueError(f"Show not found: org={org_id}, id={show_id}")
        updated = show.model_copy(update={"revenue_sharing": sharing, "updated_at": _now()})
        self._shows[show_id] = updated
        return updated

    async def deactivate_show(self, org_id: str, show_id: str) -> None:
        show = self._active_show(org_id, show_id)
        if show is None:
            raise ValueError(f"Show not found: org={org_id}, id={show_id}")
        self._shows[show_id] = show.model_copy(update={"is_active": False})

    async def get_show_metrics(
        self, org_id: str, show_id: str, window_days: int = 90
    ) -> ShowMetrics:
        since = _now() - timedelta(days=window_days)
        episodes = [
            e
            for e in self._episodes.values()
            if e.organization_id == org_id
            and e.show_id == show_id
            and e.is_active
            and e.status == EpisodeStatus.PUBLISHED
            and e.air_date is not None
            and e.air_date >= since
        ]
        count = len(episodes)
        return ShowMetrics(
            show_id=show_id,
            episode_count=count,
            avg_episode_downloads=sum(e.downloads for e in episodes) / count if count else 0.0,
            avg_youtube_views=sum(e.youtube_views for e in episodes) / count if count else 0.0,
            window_days=window_days,
        )

    async def create_episode(self, org_id: str, data: EpisodeCreate) -> EpisodeRead:
        if self._active_show(org_id, data.show_id) is None:
            raise ValueError(f"Show not found: org={org_id}, id={data.show_id}")
        now = _now()
        episode = EpisodeRead(
            id=str(uuid.uuid4()),
            organization_id=org_id,
            created_at=now,
            updated_at=now,
            **data.model_dump(),
        )
        self._episodes[episode.id] = episode
        return episode

    async def get_episode(self, org_id: str, episode_id: str) -> EpisodeRead | None:
        return self._active_episode(org_id, episode_id)

    async def list_episodes(
        self, org_id: str, filters: EpisodeFilter | None = None
    ) -> list[EpisodeRead]:
        filters = filters or EpisodeFilter()
        result = [e for e in self._episodes.values() if e.organization_id == org_id and e.is_active]
        if filters.show_id is not None:
            result = [e for e in result if e.show_id == filters.show_id]
        if filters.status is not None:
            result = [e for e in result if e.status == filters.status]
        return _page(result, filters.limit, filters.offset)

    async def update_episode(
        self, org_id: str, episode_id: str, data: EpisodeUpdate
    ) -> EpisodeRead:
        episode = self._active_episode(org_id, episode_id)
        if episode is None:
            raise ValueError(f"Episode not found: org={org_id}, id={episode_id}")
        updated = episode.model_copy(
            update={**data.model_dump(exclude_none=True), "updated_at": _now()}
        )
        self._episodes[episode_id] = updated
        return updated

    async def deactivate_episode(self, org_id: str, episode_id: str) -> None:
        episode = self._active_episode(org_id, episode_id)
        if episode is None:
            raise ValueError(f"Episode not found: org={org_id}, id={episode_id}")
        self._episodes[episode_id] = episode.model_copy(update={"is_active": False})


# ── Campaigns & Proposals ────────────────────────────────────────────────────


class InMemoryCampaignRepository:
    """In-memory CampaignRepository using the real proposal workflow rules."""

    def __init__(self) -> None:
        self._campaigns: dict[str, CampaignRead] = {}
        self._proposals: dict[str, ProposalRead] = {}

    def _active_campaign(self, org_id: str, campaign_id: str) -> CampaignRead | None:
        campaign = self._campaigns.get(campaign_id)
        if campaign and campaign.organization_id == org_id and campaign.is_active:
            return campaign
        return None

    def _require_proposal(self, org_id: str, proposal_id: str) -> ProposalRead:
        proposal = self._proposals.get(proposal_id)
        if proposal is None or proposal.organization_id != org_id:
            raise ValueError(f"Proposal not found: org={org_id}, id={proposal_id}")
        return proposal

    def _save_proposal(self, proposal: ProposalRead, **changes: Any) -> ProposalRead:
        data = {**proposal.model_dump(), **changes, "updated_at": _now()}
        data["totals"] = calculate_totals(
            [ProposalItem.model_validate(i) for i in data["items"]]
        )
        saved = ProposalRead.model_validate(data)
        self._proposals[saved.id] = saved
        return saved

    async def create_campaign(
        self, org_id: str, data: CampaignCreate, created_by: str | None = None
    ) -> CampaignRead:
        now = _now()
        campaign = CampaignRead(
            id=str(uuid.uuid4()),
            organization_id=org_id,
            created_by=created_by,
            created_at=now,
            updated_at=now,
            **data.model_dump(),
        )
        self._campaigns[campaign.id] = campaign
        return campaign

    async def get_campaign(self, org_id: str, campaign_id: str) -> CampaignRead | None:
        return self._active_campaign(org_id, campaign_id)

    async def list_campaigns(
        self, org_id: str, filters: CampaignFilter | None = None
    ) -> list[CampaignRead]:
        filters = filters or CampaignFilter()
        result = [
            c for c in self._campaigns.values() if c.organization_id == org_id and c.is_active
        ]
        if filters.status is not None:
            result = [c for c in result if c.status == filters.status]
        if filters.advertiser_name:
            needle = filters.advertiser_name.lower()
            result = [c for c in result if needle in c.advertiser_name.lower()]
        return _page(result, filters.limit, filters.offset)

    async def list_open_campaigns(self, org_id: str) -> list[CampaignRead]:
        return [
            c
            for c in self._campaigns.values()
            if c.organization_id == org_id and c.is_active and c.status in OPEN_CAMPAIGN_STATUSES
        ]

    async def list_campaigns_overlapping(
        self, org_id: str, start: datetime, end: datetime
    ) -> list[CampaignRead]:
        return [
            c
            for c in self._campaigns.values()
            if c.organization_id == org_id
            and c.is_active
            and c.status != CampaignStatus.CANCELLED
            and c.start_date is not None
            and c.end_date is not None
            and c.start_date <= end
            and c.end_date >= start
        ]

    async def count_active_campaigns(self, org_id: str) -> int:
        return len(
            [
                c
                for c in self._campaigns.values()
                if c.organization_id == org_id and c.is_active and c.status == CampaignStatus.ACTIVE
            ]
        )

    async def update_campaign(
        self, org_id: str, campaign_id: str, data: CampaignUpdate
    ) -> CampaignRead:
        campaign = self._active_campaign(org_id, campaign_id)
        if campaign is None:
            raise ValueError(f"Campaign not found: org={org_id}, id={campaign_id}")
        updated = campaign.model_copy(
            update={**data.model_dump(exclude_none=True), "updated_at": _now()}
        )
        self._campaigns[campaign_id] = updated
        return updated

    async def deactivate_campaign(self, org_id: str, campaign_id: str) -> None:
        campaign = self._active_campaign(org_id, campaign_id)
        if campaign is None:
            raise ValueError(f"Campaign not found: org={org_id}, id={campaign_id}")
        self._campaigns[campaign_id] = campaign.model_copy(update={"is_active": False})

    async def create_proposal(
        self, org_id: str, data: ProposalCreate, created_by: str | None = None
    ) -> ProposalRead:
        now = _now()
        proposal = ProposalRead(
            id=str(uuid.uuid4()),
            organization_id=org_id,
            campaign_id=data.campaign_id,
            name=data.name,
            notes=data.notes,
            items=data.items,
            totals=calculate_totals(data.items),
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        self._proposals[proposal.id] = proposal
        return proposal

    async def get_proposal(self, org_id: str, proposal_id: str) -> ProposalRead | None:
        try:
            return self._require_proposal(org_id, proposal_id)
        except ValueError:
            return None

    async def list_proposals(
        self, org_id: str, filters: ProposalFilter | None = None
    ) -> list[ProposalRead]:
        filters = filters or ProposalFilter()
        result = [p for p in self._proposals.values() if p.organization_id == org_id]
        if filters.approval_status is not None:
            result = [p for p in result if p.approval_status == filters.approval_status]
        if filters.campaign_id is not None:
            result = [p for p in result if p.campaign_id == filters.campaign_id]
        return _page(result, filters.limit, filters.offset)

    async def update_proposal(
        self, org_id: str, proposal_id: str, data: ProposalUpdate
    ) -> ProposalRead:
        proposal = self._require_proposal(org_id, proposal_id)
        check_editable(proposal.approval_status)
        changes = data.model_dump(exclude_none=True)
        return self._save_proposal(
            proposal,
            **changes,
            approval_status=ApprovalStatus.DRAFT,
            rejection_reason=None,
        )

    async def transition_proposal(
        self,
        org_id: str,
        proposal_id: str,
        action: str,
        user_id: str,
        reason: str | None = None,
    ) -> ProposalRead:
        proposal = self._require_proposal(org_id, proposal_id)
        target = next_status(action, proposal.approval_status, item_count=len(proposal.items))
        changes: dict[str, Any] = {"approval_status": target}
        if action == "submit":
            changes.update(submitted_by=user_id, submitted_at=_now())
        elif action == "approve":
            changes.update(approved_by=user_id, approved_at=_now())
        elif action == "reject":
            changes["rejection_reason"] = reason
        return self._save_proposal(proposal, **changes)

    async def delete_proposal(self, org_id: str, proposal_id: str) -> None:
        proposal = self._require_proposal(org_id, proposal_id)
        next_status("delete", proposal.approval_status)
        del self._proposals[proposal_id]

    async def list_campaign_items(self, org_id: str, campaign_id: str) -> list[ProposalItem]:
        items: list[ProposalItem] = []
        for proposal in self._proposals.values():
            if (
                proposal.organization_id == org_id
                and proposal.campaign_id == campaign_id
                and proposal.approval_status != ApprovalStatus.REJECTED
            ):
                items.extend(proposal.items)
        return items


# ── Talent Approvals ─────────────────────────────────────────────────────────


class InMemoryTalentApprovalRepository:
    """In-memory TalentApprovalRepository for testing without database."""

    def __init__(self) -> None:
        self._approvals: dict[str, TalentApprovalRead] = {}

    async def create_approval(
        self,
        org_id: str,
        data: TalentApprovalCreate,
        requested_by: str | None,
        expires_at: datetime,
    ) -> TalentApprovalRead:
        now = _now()
        approval = TalentApprovalRead(
            id=str(uuid.uuid4()),
            organization_id=org_id,
            campaign_id=data.campaign_id,
            show_id=data.show_id,
            talent_id=data.talent_id,
            spot_type=data.spot_type,
            requested_by=requested_by,
            requested_at=now,
            expires_at=expires_at,
            summary_data=data.summary_data,
            created_at=now,
            updated_at=now,
        )
        self._approvals[approval.id] = approval
        return approval

    async def get_approval(self, org_id: str, approval_id: str) -> TalentApprovalRead | None:
        approval = self._approvals.get(approval_id)
        if approval and approval.organization_id == org_id:
            return approval
        return None

    async def find_active(
        self, org_id: str, campaign_id: str, show_id: str, talent_id: str
    ) -> TalentApprovalRead | None:
        for approval in self._approvals.values():
            if (
                approval.organization_id == org_id
                and approval.campaign_id == campaign_id
                and approval.show_id == show_id
                and approval.talent_id == talent_id
                and approval.status in ACTIVE_APPROVAL_STATUSES
            ):
                return approval
        return None

    async def list_approvals(
        self, org_id: str, filters: TalentApprovalFilter | None = None
    ) -> list[TalentApprovalRead]:
        filters = filters or TalentApprovalFilter()
        result = [a for a in self._approvals.values() if a.organization_id == org_id]
        if filters.status is not None:
            result = [a for a in result if a.status == filters.status]
        if filters.campaign_id is not None:
            result = [a for a in result if a.campaign_id == filters.campaign_id]
        if filters.talent_id is not None:
            result = [a for a in result if a.talent_id == filters.talent_id]
        return _page(result, filters.limit, filters.offset)

    async def record_response(
        self,
        org_id: str,
        approval_id: str,
        status: TalentApprovalStatus,
        responded_by: str | None,
        comments: str | None = None,
        denial_reason: str | None = None,
    ) -> TalentApprovalRead:
        approval = await self.get_approval(org_id, approval_id)
        if approval is None:
            raise ValueError(f"Talent approval not found: org={org_id}, id={approval_id}")
        now = _now()
        changes: dict[str, Any] = {"status": status, "updated_at": now}
        if status != TalentApprovalStatus.EXPIRED:
            changes.update(
                responded_by=responded_by,
                responded_at=now,
                comments=comments,
                denial_reason=denial_reason,
            )
        updated = approval.model_copy(update=changes)
        self._approvals[approval_id] = updated
        return updated

    async def expire_stale(self, org_id: str, now: datetime | None = None) -> int:
        now = now or _now()
        count = 0
        for approval_id, approval in list(self._approvals.items()):
            if (
                approval.organization_id == org_id
                and approval.status == TalentApprovalStatus.PENDING
                and approval.expires_at is not None
                and approval.expires_at < now
            ):
                self._approvals[approval_id] = approval.model_copy(
                    update={"status": TalentApprovalStatus.EXPIRED, "updated_at": now}
                )
                count += 1
        return count

    async def get_clearance(self, org_id: str, campaign_id: str) -> CampaignClearance:
        counts: dict[str, int] = {}
        for approval in self._approvals.values():
            if approval.organization_id == org_id and approval.campaign_id == campaign_id:
                counts[approval.status.value] = counts.get(approval.status.value, 0) + 1
        return CampaignClearance(campaign_id=campaign_id, **counts)

    async def count_pending(self, org_id: str) -> int:
        return len(
            [
                a
                for a in self._approvals.values()
                if a.organization_id == org_id and a.status == TalentApprovalStatus.PENDING
            ]
        )

    def force_expiry(self, approval_id: str, expires_at: datetime) -> None:
        """Test helper: move a request's expiry into the past."""
        self._approvals[approval_id] = self._approvals[approval_id].model_copy(
            update={"expires_at": expires_at}
        )


# ── Notifications ────────────────────────────────────────────────────────────


class InMemoryNotificationRepository:
    """In-memory NotificationRepository for testing without database."""

    def __init__(self) -> None:
        self._notifications: list[tuple[str, NotificationRead]] = []

    async def create_notification(
        self, org_id: str, data: NotificationCreate
    ) -> NotificationRead:
        notification = NotificationRead(
            id=str(uuid.uuid4()),
            created_at=_now(),
            **data.model_dump(),
        )
        self._notifications.append((org_id, notification))
        return notification

    async def list_notifications(
        self, org_id: str, user_id: str, unread_only: bool = False, limit: int = 50
    ) -> list[NotificationRead]:
        result = [
            n for org, n in reversed(self._notifications) if org == org_id and n.user_id == user_id
        ]
        if unread_only:
            result = [n for n in result if not n.is_read]
        return result[:limit]

    async def mark_read(
        self, org_id: str, user_id: str, notification_id: str
    ) -> NotificationRead:
        for index, (org, notification) in enumerate(self._notifications):
            if org == org_id and notification.user_id == user_id and notification.id == notification_id:
                if not notification.is_read:
                    notification = notification.model_copy(
                        update={"is_read": True, "read_at": _now()}
                    )
                    self._notifications[index] = (org, notification)
                return notification
        raise ValueError(f"Notification not found: id={notification_id}")

    async def mark_all_read(self, org_id: str, user_id: str) -> int:
        count = 0
        for index, (org, notification) in enumerate(self._notifications):
            if org == org_id and notification.user_id == user_id and not notification.is_read:
                self._notifications[index] = (
                    org,
                    notification.model_copy(update={"is_read": True, "read_at": _now()}),
                )
                count += 1
        return count

    def for_user(self, user_id: str) -> list[NotificationRead]:
        """Test helper: every notification addressed to user_id, oldest first."""
        return [n for _, n in self._notifications if n.user_id == user_id]


# ── Financials ───────────────────────────────────────────────────────────────


class InMemoryFinancialRepository:
    """In-memory FinancialRepository using the real invoice rules."""

    def __init__(self, invoice_prefix: str = "INV") -> None:
        self._invoice_prefix = invoice_prefix
        self._invoices: dict[str, InvoiceRead] = {}
        self._payments: dict[str, PaymentRead] = {}
        self._expenses: dict[str, ExpenseRead] = {}

    def _require_invoice(self, org_id: str, invoice_id: str) -> InvoiceRead:
        invoice = self._invoices.get(invoice_id)
        if invoice is None or invoice.organization_id != org_id:
            raise ValueError(f"Invoice not found: org={org_id}, id={invoice_id}")
        return invoice

    def _active_expense(self, org_id: str, expense_id: str) -> ExpenseRead | None:
        expense = self._expenses.get(expense_id)
        if expense and expense.organization_id == org_id and expense.is_active:
            return expense
        return None

    def _payments_between(self, org_id: str, start: date, end: date) -> list[PaymentRead]:
        return [
            p
            for p in self._payments.values()
            if p.organization_id == org_id
            and p.status == "completed"
            and start <= p.payment_date <= end
        ]

    # Invoices

    async def create_invoice(self, org_id: str, data: InvoiceCreate) -> InvoiceRead:
        year = data.issue_date.year
        existing = [i.number for i in self._invoices.values() if i.organization_id == org_id]
        now = _now()
        invoice = InvoiceRead(
            id=str(uuid.uuid4()),
            organization_id=org_id,
            number=next_invoice_number(self._invoice_prefix, year, existing),
            created_at=now,
            updated_at=now,
            **data.model_dump(),
        )
        self._invoices[invoice.id] = invoice
        return invoice

    async def get_invoice(self, org_id: str, invoice_id: str) -> InvoiceRead | None:
        try:
            return self._require_invoice(org_id, invoice_id)
        except ValueError:
            return None

    async def list_invoices(
        self, org_id: str, filters: InvoiceFilter | None = None
    ) -> list[InvoiceRead]:
        filters = filters or InvoiceFilter()
        result = [i for i in self._invoices.values() if i.organization_id == org_id]
        if filters.status is not None:
            result = [i for i in result if i.status == filters.status]
        if filters.client_name:
            needle = filters.client_name.lower()
            result = [i for i in result if needle in i.client_name.lower()]
        result.sort(key=lambda i: (i.issue_date, i.number), reverse=True)
        return _page(result, filters.limit, filters.offset)

    async def list_outstanding_invoices(self, org_id: str) -> list[InvoiceRead]:
        result = [
            i
            for i in self._invoices.values()
            if i.organization_id == org_id and i.status in OUTSTANDING_INVOICE_STATUSES
        ]
        return sorted(result, key=lambda i: i.due_date)

    async def update_invoice(
        self, org_id: str, invoice_id: str, data: InvoiceUpdate
    ) -> InvoiceRead:
        invoice = self._require_invoice(org_id, invoice_id)
        changes = data.model_dump(exclude_none=True)
        new_status = changes.get("status")
        if new_status is not None:
            check_transition(invoice.status, new_status)
            if new_status == InvoiceStatus.PAID and invoice.paid_date is None:
                changes["paid_date"] = date.today()
        updated = invoice.model_copy(update={**changes, "updated_at": _now()})
        self._invoices[invoice_id] = updated
        return updated

    async def void_invoice(self, org_id: str, invoice_id: str) -> InvoiceRead:
        return await self.update_invoice(
            org_id, invoice_id, InvoiceUpdate(status=InvoiceStatus.VOID)
        )

    # Payments

    async def record_payment(self, org_id: str, data: PaymentCreate) -> PaymentRead:
        client_name = data.client_name
        if data.invoice_id:
            invoice = self._require_invoice(org_id, data.invoice_id)
            status, paid_amount, paid_date = apply_payment(
                invoice.status, invoice.amount, invoice.paid_amount, data.amount, data.payment_date
            )
            changes: dict[str, Any] = {"status": status, "paid_amount": paid_amount}
            if paid_date is not None:
                changes["paid_date"] = paid_date
            self._invoices[invoice.id] = invoice.model_copy(update=changes)
            client_name = client_name or invoice.client_name

        payment = PaymentRead(
            id=str(uuid.uuid4()),
            organization_id=org_id,
            invoice_id=data.invoice_id,
            client_name=client_name,
            amount=data.amount,
            method=data.method,
            payment_date=data.payment_date,
            reference=data.reference,
            created_at=_now(),
        )
        self._payments[payment.id] = payment
        return payment

    async def list_payments(
        self, org_id: str, filters: PaymentFilter | None = None
    ) -> list[PaymentRead]:
        filters = filters or PaymentFilter()
        result = [p for p in self._payments.values() if p.organization_id == org_id]
        if filters.start_date is not None:
            result = [p for p in result if p.payment_date >= filters.start_date]
        if filters.end_date is not None:
            result = [p for p in result if p.payment_date <= filters.end_date]
        if filters.method is not None:
            result = [p for p in result if p.method == filters.method]
        result.sort(key=lambda p: p.payment_date, reverse=True)
        return _page(result, filters.limit, filters.offset)

    async def sum_payments(self, org_id: str, start: date, end: date) -> float:
        return float(sum(p.amount for p in self._payments_between(org_id, start, end)))

    async def top_clients(
        self, org_id: str, start: date, end: date, limit: int = 10
    ) -> list[TopClient]:
        totals: dict[str, list[float]] = {}
        for payment in self._payments_between(org_id, start, end):
            entry = totals.setdefault(payment.client_name, [0.0, 0])
            entry[0] += payment.amount
            entry[1] += 1
        ranked = sorted(totals.items(), key=lambda kv: kv[1][0], reverse=True)
        return [
            TopClient(client_name=name, revenue=revenue, payment_count=int(count))
            for name, (revenue, count) in ranked[:limit]
        ]

    # Expenses

    async def create_expense(self, org_id: str, data: ExpenseCreate) -> ExpenseRead:
        now = _now()
        expense = ExpenseRead(
            id=str(uuid.uuid4()),
            organization_id=org_id,
            created_at=now,
            updated_at=now,
            **data.model_dump(),
        )
        self._expenses[expense.id] = expense
        return expense

    async def get_expense(self, org_id: str, expense_id: str) -> ExpenseRead | None:
        return self._active_expense(org_id, expense_id)

    async def list_expenses(
        self, org_id: str, filters: ExpenseFilter | None = None
    ) -> list[ExpenseRead]:
        filters = filters or ExpenseFilter()
        result = [
            e for e in self._expenses.values() if e.organization_id == org_id and e.is_active
        ]
        if filters.category is not None:
            result = [e for e in result if e.category == filters.category]
        if filters.status is not None:
            result = [e for e in result if e.status == filters.status]
        if filters.start_date is not None:
            result = [e for e in result if e.expense_date >= filters.start_date]
        if filters.end_date is not None:
            result = [e for e in result if e.expense_date <= filters.end_date]
        result.sort(key=lambda e: e.expense_date, reverse=True)
        return _page(result, filters.limit, filters.offset)

    async def update_expense(
        self, org_id: str, expense_id: str, data: ExpenseUpdate
    ) -> ExpenseRead:
        expense = self._active_expense(org_id, expense_id)
        if expense is None:
            raise ValueError(f"Expense not found: org={org_id}, id={expense_id}")
        updated = expense.model_copy(
            update={**data.model_dump(exclude_none=True), "updated_at": _now()}
        )
        self._expenses[expense_id] = updated
        return updated

    async def deactivate_expense(self, org_id: str, expense_id: str) -> None:
        expense = self._active_expense(org_id, expense_id)
        if expense is None:
            raise ValueError(f"Expense not found: org={org_id}, id={expense_id}")
        self._expenses[expense_id] = expense.model_copy(update={"is_active": False})

    async def expenses_by_category(
        self,
        org_id: str,
        start: date,
        end: date,
        statuses: tuple[ExpenseStatus, ...] | None = None,
    ) -> dict[str, float]:
        totals: dict[str, float] = {}
        for expense in self._expenses.values():
            if expense.organization_id != org_id or not expense.is_active:
                continue
            if not start <= expense.expense_date <= end:
                continue
            if statuses and expense.status not in statuses:
                continue
            key = expense.category.value
            totals[key] = totals.get(key, 0.0) + expense.amount
        return totals

    async def sum_expenses(self, org_id: str, start: date, end: date) -> float:
        totals = await self.expenses_by_category(org_id, start, end)
        return sum(totals.values())


# ── Redis ────────────────────────────────────────────────────────────────────


class FakeRedis:
    """Dict-backed stand-in for the get/set subset of redis.asyncio.Redis."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int | None] = {}

    async def get(self, key: str) -> str | None:
        return self.store.get(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> None:
        self.store[key] = value
        self.ttls[key] = ex


# ── Fixtures ─────────────────────────────────────────────────────────────────


def make_user(role: str = "admin", user_id: uuid.UUID | None = None) -> MagicMock:
    """Return a mock user for auth bypass."""
    mock_user = MagicMock()
    mock_user.id = user_id or uuid.uuid4()
    mock_user.organization_id = ORG_ID
    mock_user.is_active = True
    mock_user.role = role
    return mock_user


def _organization_context() -> OrganizationContext:
    return OrganizationContext(
        organization_id=ORG_ID,
        organization_slug=ORG_SLUG,
        schema_name="org_acme_audio",
    )


def build_app(user: Any, state: SimpleNamespace, **state_overrides: Any):
    """Minimal FastAPI app with every v1 domain router and mocked auth."""
    from fastapi import FastAPI

    from src.app.api.deps import get_current_user, get_organization
    from src.app.api.v1 import (
        campaigns,
        dashboard,
        episodes,
        financials,
        notifications,
        proposals,
        reports,
        shows,
        talent_approvals,
    )

    app = FastAPI()
    for module in (
        shows,
        episodes,
        campaigns,
        proposals,
        talent_approvals,
        notifications,
        financials,
        reports,
        dashboard,
    ):
        app.include_router(module.router)

    app.dependency_overrides[get_current_user] = lambda: user
    app.dependency_overrides[get_organization] = _organization_context

    for name, value in vars(state).items():
        setattr(app.state, name, value)
    for name, value in state_overrides.items():
        setattr(app.state, name, value)
    return app


@pytest.fixture
def org_id() -> str:
    return ORG_ID


@pytest.fixture
def state() -> SimpleNamespace:
    """Fully wired in-memory app.state, mirroring the application lifespan."""
    show_repository = InMemoryShowRepository()
    campaign_repository = InMemoryCampaignRepository()
    notification_repository = InMemoryNotificationRepository()
    notification_service = NotificationService(notification_repository)
    talent_repository = InMemoryTalentApprovalRepository()
    financial_repository = InMemoryFinancialRepository()
    redis = FakeRedis()
    return SimpleNamespace(
        show_repository=show_repository,
        campaign_repository=campaign_repository,
        notification_repository=notification_repository,
        notification_service=notification_service,
        talent_repository=talent_repository,
        talent_workflow=TalentApprovalWorkflow(
            repository=talent_repository,
            notifier=notification_service,
            campaign_repository=campaign_repository,
            show_repository=show_repository,
            expiry_days=7,
            commit_threshold=90,
        ),
        financial_repository=financial_repository,
        financial_reports=FinancialReportService(
            financial_repository, campaign_repository=campaign_repository
        ),
        dashboard_service=DashboardService(
            show_repository=show_repository,
            campaign_repository=campaign_repository,
            talent_repository=talent_repository,
            financial_repository=financial_repository,
            redis=redis,
            cache_ttl=60,
        ),
        redis=redis,
    )


@pytest_asyncio.fixture
async def make_client(state):
    """Factory for AsyncClients acting as a given user against the shared state.

    Usage:
        client = await make_client(role="talent", user_id=talent_id)
        client = await make_client(show_repository=None)  # 503 case
    """
    async with AsyncExitStack() as stack:

        async def _make(
            role: str = "admin", user_id: uuid.UUID | None = None, **state_overrides: Any
        ) -> AsyncClient:
            app = build_app(make_user(role, user_id), state, **state_overrides)
            transport = ASGITransport(app=app)
            return await stack.enter_async_context(
                AsyncClient(transport=transport, base_url="http://test")
            )

        yield _make


@pytest_asyncio.fixture
async def client(make_client) -> AsyncClient:
    """Client acting as an admin."""
    return await make_client()
