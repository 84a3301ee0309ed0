"""Show persistence models -- organization-scoped shows and episodes.

Two SQLAlchemy models using OrgBase for schema_translate_map isolation:
- ShowModel: A podcast with its monetization and revenue sharing settings
- EpisodeModel: An episode with its measured downloads and YouTube views

Both use the "org" placeholder schema, remapped at runtime to the actual
organization schema (e.g., "org_acme_audio").
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.app.core.database import OrgBase


class ShowModel(OrgBase):
    """A podcast show sold to advertisers.

    Monetization columns hold the per-placement rate card (CPM, flat spot
    cost, slot count for pre/mid/post roll). estimated_episode_value is the
    last result of the revenue calculator, persisted when the settings are
    saved.
    """

    __tablename__ = "shows"
    __table_args__ = (
        UniqueConstraint("organization_id", "name", name="uq_show_org_name"),
        {"schema": "org"},
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    name: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    host_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    talent_user_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, server_default=text("true"))

    # Monetization
    pricing_model: Mapped[str] = mapped_column(
        String(20), default="cpm", server_default=text("'cpm'")
    )
    pre_roll_cpm: Mapped[float | None] = mapped_column(Float, nullable=True)
    pre_roll_spot_cost: Mapped[float | None] = mapped_column(Float, nullable=True)
    pre_roll_slots: Mapped[int | None] = mapped_column(Integer, nullable=True)
    mid_roll_cpm: Mapped[float | None] = mapped_column(Float, nullable=True)
    mid_roll_spot_cost: Mapped[float | None] = mapped_column(Float, nullable=True)
    mid_roll_slots: Mapped[int | None] = mapped_column(Integer, nullable=True)
    post_roll_cpm: Mapped[float | None] = mapped_column(Float, nullable=True)
    post_roll_spot_cost: Mapped[float | None] = mapped_column(Float, nullable=True)
    post_roll_slots: Mapped[int | None] = mapped_column(Integer, nullable=True)
    avg_episode_downloads: Mapped[int | None] = mapped_column(Integer, nullable=True)
    sellout_projection: Mapped[float | None] = mapped_column(Float, nullable=True)
    estimated_episode_value: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Revenue sharing
    revenue_sharing_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    revenue_sharing_percentage: Mapped[float | None] = mapped_column(Float, nullable=True)
    revenue_sharing_fixed_amount: Mapped[float | None] = mapped_column(Float, nullable=True)
    revenue_sharing_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        onupdate=func.now(),
        nullable=True,
    )


class EpisodeModel(OrgBase):
    """Single episode of a show.

    Linked to its show via show_id (application-level referential
    integrity, no FK constraint, consistent with the other domain tables).
    """

    __tablename__ = "episodes"
    __table_args__ = (
        {"schema": "org"},
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    show_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    episode_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    air_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default="draft", server_default=text("'draft'")
    )
    duration_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    downloads: Mapped[int] = mapped_column(Integer, default=0, server_default=text("0"))
    youtube_views: Mapped[int] = mapped_column(Integer, default=0, server_default=text("0"))
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
