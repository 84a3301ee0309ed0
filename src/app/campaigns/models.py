"""Campaign persistence models -- organization-scoped campaigns and proposals.

- CampaignModel: Advertiser campaign with budget, flight dates and win probability
- ProposalModel: Sales proposal; line items are stored as a JSON document
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, Integer, String, Text, func, text
from sqlalchemy.dialects.postgresql import JSON, UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.app.core.database import OrgBase


class CampaignModel(OrgBase):
    """Advertiser campaign.

    probability moves through the sales milestones (10, 35, 65, 90, 100);
    crossing 65 and 90 drives the talent approval workflow.
    """

    __tablename__ = "campaigns"
    __table_args__ = (
        {"schema": "org"},
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    name: Mapped[str] = mapped_column(String(300), nullable=False)
    advertiser_name: Mapped[str] = mapped_column(String(300), nullable=False)
    agency_name: Mapped[str | None] = mapped_column(String(300), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default="draft", server_default=text("'draft'")
    )
    probability: Mapped[int] = mapped_column(Integer, default=10, server_default=text("10"))
    budget: Mapped[float] = mapped_column(Float, default=0.0, server_default=text("0"))
    start_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, server_default=text("true"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        onupdate=func.now(),
        nullable=True,
    )


class ProposalModel(OrgBase):
    """Proposal with its line items (JSON list of ProposalItem dicts)."""

    __tablename__ = "proposals"
    __table_args__ = (
        {"schema": "org"},
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    campaign_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    name: Mapped[str] = mapped_column(String(300), nullable=False)
    approval_status: Mapped[str] = mapped_column(
        String(30), default="draft", server_default=text("'draft'")
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    items: Mapped[list] = mapped_column(
        JSON, default=list, server_default=text("'[]'::json")
    )
    created_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    submitted_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        onupdate=func.now(),
        nullable=True,
    )
