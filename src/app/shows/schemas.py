"""Pydantic schemas for shows, episodes, monetization, and revenue estimates.

Defines all structured types for the show catalogue:
- Enums: PricingModel, Placement, EpisodeStatus, RevenueSharingType
- Monetization: PlacementRate, MonetizationSettings, RevenueSharing
- Show CRUD: ShowCreate/Update/Read/Filter, ShowMetrics
- Episode CRUD: EpisodeCreate/Update/Read/Filter
- Calculator output: PlacementEstimate, RevenueEstimate, RevenueProjection
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


# ── Enums ───────────────────────────────────────────────────────────────────


class PricingModel(str, Enum):
    """How a show's ad inventory is priced."""

    CPM = "cpm"
    SPOT = "spot"
    BOTH = "both"


class Placement(str, Enum):
    """Position of an ad within an episode."""

    PRE_ROLL = "pre_roll"
    MID_ROLL = "mid_roll"
    POST_ROLL = "post_roll"


class EpisodeStatus(str, Enum):
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    PUBLISHED = "published"


class RevenueSharingType(str, Enum):
    """How talent is compensated out of show revenue."""

    PERCENTAGE = "percentage"
    FIXED = "fixed"
    TIERED = "tiered"
    NONE = "none"


class DownloadsSource(str, Enum):
    """Where the download figure used in an estimate came from."""

    OVERRIDE = "override"
    MEASURED = "measured"
    DEFAULT = "default"


# ── Monetization ────────────────────────────────────────────────────────────


class PlacementRate(BaseModel):
    """Rate card entry for one placement. Missing values count as zero."""

    cpm: float | None = Field(default=None, ge=0)
    spot_cost: float | None = Field(default=None, ge=0)
    slots: int | None = Field(default=None, ge=0)


class MonetizationSettings(BaseModel):
    """Pricing inputs for the per-episode revenue estimate."""

    pricing_model: PricingModel = PricingModel.CPM
    pre_roll: PlacementRate = Field(default_factory=PlacementRate)
    mid_roll: PlacementRate = Field(default_factory=PlacementRate)
    post_roll: PlacementRate = Field(default_factory=PlacementRate)
    avg_episode_downloads: int | None = Field(
        default=None,
        ge=0,
        description="Explicit override; measured analytics are used when unset",
    )
    sellout_projection: float | None = Field(default=None, ge=0, le=100)

    def rate_for(self, placement: Placement) -> PlacementRate:
        return getattr(self, placement.value)


class RevenueSharing(BaseModel):
    """Talent revenue sharing agreement."""

    type: RevenueSharingType = RevenueSharingType.NONE
    percentage: float | None = Field(default=None, ge=0, le=100)
    fixed_amount: float | None = Field(default=None, ge=0)
    notes: str | None = None


# ── Show CRUD Schemas ───────────────────────────────────────────────────────


class ShowCreate(BaseModel):
    """Schema for creating a new show."""

    name: str = Field(..., min_length=1, max_length=300)
    description: str | None = None
    host_name: str | None = None
    talent_user_id: str | None = None
    category: str | None = None
    monetization: MonetizationSettings | None = None


class ShowUpdate(BaseModel):
    """Schema for updating a show (all fields optional)."""

    name: str | None = Field(default=None, min_length=1, max_length=300)
    description: str | None = None
    host_name: str | None = None
    talent_user_id: str | None = None
    category: str | None = None


class ShowRead(BaseModel):
    """Schema for reading a show (includes all persisted fields)."""

    id: str
    organization_id: str
    name: str
    description: str | None = None
    host_name: str | None = None
    talent_user_id: str | None = None
    category: str | None = None
    is_active: bool = True
    monetization: MonetizationSettings = Field(default_factory=MonetizationSettings)
    estimated_episode_value: float | None = None
    revenue_sharing: RevenueSharing = Field(default_factory=RevenueSharing)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ShowFilter(BaseModel):
    """Filter criteria for listing shows."""

    category: str | None = None
    search: str | None = None
    limit: int = 50
    offset: int = 0


class ShowMetrics(BaseModel):
    """Measured audience for a show over the metrics window."""

    show_id: str
    episode_count: int = 0
    avg_episode_downloads: float = 0.0
    avg_youtube_views: float = 0.0
    window_days: int = 90

    @property
    def combined_reach(self) -> int:
        """Average downloads plus average YouTube views per episode."""
        return round(self.avg_episode_downloads + self.avg_youtube_views)


# ── Episode CRUD Schemas ────────────────────────────────────────────────────


class EpisodeCreate(BaseModel):
    """Schema for creating a new episode."""

    show_id: str
    title: str = Field(..., min_length=1, max_length=300)
    episode_number: int | None = Field(default=None, ge=0)
    air_date: datetime | None = None
    status: EpisodeStatus = EpisodeStatus.DRAFT
    duration_seconds: int | None = Field(default=None, ge=0)
    downloads: int = Field(default=0, ge=0)
    youtube_views: int = Field(default=0, ge=0)


class EpisodeUpdate(BaseModel):
    """Schema for updating an episode (all fields optional)."""

    title: str | None = Field(default=None, min_length=1, max_length=300)
    episode_number: int | None = Field(default=None, ge=0)
    air_date: datetime | None = None
    status: EpisodeStatus | None = None
    duration_seconds: int | None = Field(default=None, ge=0)
    downloads: int | None = Field(default=None, ge=0)
    youtube_views: int | None = Field(default=None, ge=0)


class EpisodeRead(BaseModel):
    """Schema for reading an episode."""

    id: str
    organization_id: str
    show_id: str
    title: str
    episode_number: int | None = None
    air_date: datetime | None = None
    status: EpisodeStatus = EpisodeStatus.DRAFT
    duration_seconds: int | None = None
    downloads: int = 0
    youtube_views: int = 0
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None


class EpisodeFilter(BaseModel):
    """Filter criteria for listing episodes."""

    show_id: str | None = None
    status: EpisodeStatus | None = None
    limit: int = 50
    offset: int = 0


# ── Revenue Calculator Output ───────────────────────────────────────────────


class PlacementEstimate(BaseModel):
    """Revenue contribution of one placement."""

    placement: Placement
    slots: int = 0
    spot_revenue: float = 0.0
    cpm_revenue: float = 0.0


class RevenueEstimate(BaseModel):
    """Per-episode ad revenue estimate."""

    pricing_model: str
    downloads: int
    downloads_source: DownloadsSource
    spot_total: float = 0.0
    cpm_total: float = 0.0
    total: float = 0.0
    placements: list[PlacementEstimate] = Field(default_factory=list)


class RevenueProjection(BaseModel):
    """Projected revenue after sellout and the talent's share."""

    estimated_episode_value: float = 0.0
    sellout_projection: float = 100.0
    estimated_revenue: float = 0.0
    sharing_type: RevenueSharingType = RevenueSharingType.NONE
    talent_share: float = 0.0
    organization_profit: float = 0.0
