"""Pydantic schemas for talent approvals."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, model_validator


class SpotType(str, Enum):
    HOST_READ = "host_read"
    ENDORSEMENT = "endorsement"
    PRE_PRODUCED = "pre_produced"


class TalentApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    EXPIRED = "expired"


# Statuses that block a duplicate request for the same campaign/show/talent
ACTIVE_APPROVAL_STATUSES = (TalentApprovalStatus.PENDING, TalentApprovalStatus.APPROVED)


class TalentApprovalCreate(BaseModel):
    """Schema for requesting a talent approval."""

    campaign_id: str
    show_id: str
    talent_id: str
    spot_type: SpotType = SpotType.HOST_READ
    summary_data: dict[str, Any] = Field(default_factory=dict)


class TalentApprovalDecision(BaseModel):
    """Talent's answer to a request. A denial must carry a reason."""

    status: TalentApprovalStatus
    comments: str | None = None
    denial_reason: str | None = None

    @model_validator(mode="after")
    def _check_decision(self) -> TalentApprovalDecision:
        if self.status not in (TalentApprovalStatus.APPROVED, TalentApprovalStatus.DENIED):
            raise ValueError("status must be 'approved' or 'denied'")
        if self.status == TalentApprovalStatus.DENIED and not self.denial_reason:
            raise ValueError("denial_reason is required when denying")
        return self


class TalentApprovalRead(BaseModel):
    """Schema for reading a talent approval."""

    id: str
    organization_id: str
    campaign_id: str
    show_id: str
    talent_id: str
    spot_type: SpotType = SpotType.HOST_READ
    status: TalentApprovalStatus = TalentApprovalStatus.PENDING
    requested_by: str | None = None
    requested_at: datetime | None = None
    responded_by: str | None = None
    responded_at: datetime | None = None
    comments: str | None = None
    denial_reason: str | None = None
    expires_at: datetime | None = None
    summary_data: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TalentApprovalFilter(BaseModel):
    status: TalentApprovalStatus | None = None
    campaign_id: str | None = None
    talent_id: str | None = None
    limit: int = 50
    offset: int = 0


class CampaignClearance(BaseModel):
    """Talent approval counts for one campaign."""

    campaign_id: str
    pending: int = 0
    approved: int = 0
    denied: int = 0
    expired: int = 0

    @property
    def cleared(self) -> bool:
        return self.denied == 0 and self.pending == 0
