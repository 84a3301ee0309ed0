"""Pydantic schemas for campaigns and proposals.

- Enums: CampaignStatus, ApprovalStatus
- Campaign CRUD: CampaignCreate/Update/Read/Filter
- Proposals: ProposalItem, ProposalCreate/Update/Read/Filter, ProposalTotals
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, model_validator

from src.app.shows.schemas import Placement


# ── Enums ───────────────────────────────────────────────────────────────────


class CampaignStatus(str, Enum):
    DRAFT = "draft"
    PROPOSAL = "proposal"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ApprovalStatus(str, Enum):
    """Proposal approval lifecycle."""

    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"


# Campaign statuses that still count toward the sales pipeline
OPEN_CAMPAIGN_STATUSES = (
    CampaignStatus.DRAFT,
    CampaignStatus.PROPOSAL,
    CampaignStatus.ACTIVE,
    CampaignStatus.PAUSED,
)


# ── Campaign CRUD Schemas ───────────────────────────────────────────────────


class CampaignCreate(BaseModel):
    """Schema for creating a new campaign."""

    name: str = Field(..., min_length=1, max_length=300)
    advertiser_name: str = Field(..., min_length=1, max_length=300)
    agency_name: str | None = None
    status: CampaignStatus = CampaignStatus.DRAFT
    probability: int = Field(default=10, ge=0, le=100)
    budget: float = Field(default=0.0, ge=0)
    start_date: datetime | None = None
    end_date: datetime | None = None

    @model_validator(mode="after")
    def _check_flight(self) -> CampaignCreate:
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class CampaignUpdate(BaseModel):
    """Schema for updating a campaign (all fields optional)."""

    name: str | None = Field(default=None, min_length=1, max_length=300)
    advertiser_name: str | None = Field(default=None, min_length=1, max_length=300)
    agency_name: str | None = None
    status: CampaignStatus | None = None
    probability: int | None = Field(default=None, ge=0, le=100)
    budget: float | None = Field(default=None, ge=0)
    start_date: datetime | None = None
    end_date: datetime | None = None


class CampaignRead(BaseModel):
    """Schema for reading a campaign."""

    id: str
    organization_id: str
    name: str
    advertiser_name: str
    agency_name: str | None = None
    status: CampaignStatus = CampaignStatus.DRAFT
    probability: int = 10
    budget: float = 0.0
    start_date: datetime | None = None
    end_date: datetime | None = None
    created_by: str | None = None
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CampaignFilter(BaseModel):
    """Filter criteria for listing campaigns."""

    status: CampaignStatus | None = None
    advertiser_name: str | None = None
    limit: int = 50
    offset: int = 0


# ── Proposal Schemas ────────────────────────────────────────────────────────


class ProposalItem(BaseModel):
    """One scheduled ad slot (or a block of identical slots) in a proposal."""

    show_id: str
    episode_id: str | None = None
    air_date: datetime | None = None
    placement_type: Placement = Placement.MID_ROLL
    quantity: int = Field(default=1, ge=1)
    rate_card_price: float = Field(default=0.0, ge=0)
    negotiated_price: float = Field(default=0.0, ge=0)


class ProposalCreate(BaseModel):
    """Schema for creating a proposal."""

    name: str = Field(..., min_length=1, max_length=300)
    campaign_id: str | None = None
    notes: str | None = None
    items: list[ProposalItem] = Field(default_factory=list)


class ProposalUpdate(BaseModel):
    """Schema for updating a draft or rejected proposal."""

    name: str | None = Field(default=None, min_length=1, max_length=300)
    campaign_id: str | None = None
    notes: str | None = None
    items: list[ProposalItem] | None = None


class ProposalTotals(BaseModel):
    """Pricing summary of a proposal's items."""

    item_count: int = 0
    slot_count: int = 0
    gross_total: float = 0.0
    net_total: float = 0.0
    discount: float = 0.0
    discount_percentage: float = 0.0
    slots_by_placement: dict[str, int] = Field(default_factory=dict)


class ProposalRead(BaseModel):
    """Schema for reading a proposal, totals included."""

    id: str
    organization_id: str
    campaign_id: str | None = None
    name: str
    approval_status: ApprovalStatus = ApprovalStatus.DRAFT
    notes: str | None = None
    items: list[ProposalItem] = Field(default_factory=list)
    totals: ProposalTotals = Field(default_factory=ProposalTotals)
    created_by: str | None = None
    submitted_by: str | None = None
    submitted_at: datetime | None = None
    approved_by: str | None = None
    approved_at: datetime | None = None
    rejection_reason: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProposalFilter(BaseModel):
    """Filter criteria for listing proposals."""

    approval_status: ApprovalStatus | None = None
    campaign_id: str | None = None
    limit: int = 50
    offset: int = 0
