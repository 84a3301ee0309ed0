"""Per-episode ad revenue estimate.

Pure functions, no I/O. The estimate is a display figure: no rounding is
applied and missing inputs never raise.

CPM revenue for a placement is ``downloads * slots / 1000 * cpm``; spot
revenue is ``spot_cost * slots``. The pricing model selects which of the two
totals count toward the episode value (``both`` adds them).
"""

from __future__ import annotations

import math
from typing import Any

from src.app.shows.schemas import (
    DownloadsSource,
    MonetizationSettings,
    Placement,
    PlacementEstimate,
    PricingModel,
    RevenueEstimate,
    RevenueProjection,
    RevenueSharing,
    RevenueSharingType,
)

DEFAULT_EPISODE_DOWNLOADS = 5000


def _num(value: Any) -> float:
    """Coerce a possibly-missing number to a finite float (0 otherwise)."""
    if value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def calculate_cpm_revenue(cpm: Any, slots: Any, downloads: Any) -> float:
    """Revenue for ``slots`` CPM-priced ads heard ``downloads`` times.

    >>> calculate_cpm_revenue(25, 2, 5000)
    250.0
    """
    cpm, slots, downloads = _num(cpm), _num(slots), _num(downloads)
    if not cpm or not slots or not downloads:
        return 0.0
    return (downloads * slots / 1000) * cpm


def calculate_spot_revenue(spot_cost: Any, slots: Any) -> float:
    """Revenue for ``slots`` flat-priced spots."""
    spot_cost, slots = _num(spot_cost), _num(slots)
    if not spot_cost or not slots:
        return 0.0
    return spot_cost * slots


def resolve_downloads(
    override: Any,
    measured: Any,
    default: int = DEFAULT_EPISODE_DOWNLOADS,
) -> tuple[int, DownloadsSource]:
    """Pick the download figure for an estimate.

    An explicit override wins, then measured analytics, then ``default``.
    Zero counts as missing at every step.
    """
    if _num(override) > 0:
        return int(_num(override)), DownloadsSource.OVERRIDE
    if _num(measured) > 0:
        return int(_num(measured)), DownloadsSource.MEASURED
    return default, DownloadsSource.DEFAULT


def estimate_episode_revenue(
    settings: MonetizationSettings,
    measured_downloads: Any = None,
    default_downloads: int = DEFAULT_EPISODE_DOWNLOADS,
) -> RevenueEstimate:
    """Estimate ad revenue for one episode from a show's monetization settings."""
    downloads, source = resolve_downloads(
        settings.avg_episode_downloads, measured_downloads, default_downloads
    )
    pricing_model = PricingModel(settings.pricing_model)

    placements: list[PlacementEstimate] = []
    spot_total = 0.0
    cpm_total = 0.0
    for placement in Placement:
        rate = settings.rate_for(placement)
        spot_revenue = calculate_spot_revenue(rate.spot_cost, rate.slots)
        cpm_revenue = calculate_cpm_revenue(rate.cpm, rate.slots, downloads)
        spot_total += spot_revenue
        cpm_total += cpm_revenue
        placements.append(
            PlacementEstimate(
                placement=placement,
                slots=int(_num(rate.slots)),
                spot_revenue=spot_revenue,
                cpm_revenue=cpm_revenue,
            )
        )

    if pricing_model == PricingModel.SPOT:
        total = spot_total
    elif pricing_model == PricingModel.CPM:
        total = cpm_total
    else:
        total = spot_total + cpm_total

    return RevenueEstimate(
        pricing_model=pricing_model.value,
        downloads=downloads,
        downloads_source=source,
        spot_total=spot_total,
        cpm_total=cpm_total,
        total=total,
        placements=placements,
    )


def _sellout_percent(sellout_projection: Any) -> float:
    # 0 and unusable values mean "not set"
    return _num(sellout_projection) or 100.0


def apply_sellout(total: Any, sellout_projection: Any = None) -> float:
    """Scale an episode value by the expected sellout percentage (default 100%)."""
    return _num(total) * _sellout_percent(sellout_projection) / 100


def calculate_talent_share(revenue: Any, sharing: RevenueSharing) -> float:
    """Talent's cut of ``revenue`` under a sharing agreement.

    Tiered agreements are negotiated per deal and contribute 0 here.
    """
    if sharing.type == RevenueSharingType.PERCENTAGE:
        return _num(revenue) * _num(sharing.percentage) / 100
    if sharing.type == RevenueSharingType.FIXED:
        return _num(sharing.fixed_amount)
    return 0.0


def project_show_revenue(
    estimated_episode_value: Any,
    sellout_projection: Any,
    sharing: RevenueSharing,
) -> RevenueProjection:
    """Project revenue, talent share, and organization profit for an episode."""
    revenue = apply_sellout(estimated_episode_value, sellout_projection)
    talent_share = calculate_talent_share(revenue, sharing)
    return RevenueProjection(
        estimated_episode_value=_num(estimated_episode_value),
        sellout_projection=_sellout_percent(sellout_projection),
        estimated_revenue=revenue,
        sharing_type=sharing.type,
        talent_share=talent_share,
        organization_profit=revenue - talent_share,
    )
