"""Dashboard summary assembly.

Each figure is gathered on its own. A source that raises is logged and
reported as zero, and its name is listed in `degraded`, so the dashboard
always renders. Summaries are cached per organization in Redis.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import date, datetime, timezone
from typing import Any

import structlog
from pydantic import BaseModel, Field

from src.app.core.redis import org_key
from src.app.financials.periods import month_bounds

logger = structlog.get_logger(__name__)

CACHE_KEY = "dashboard:summary"


class DashboardSummary(BaseModel):
    active_shows: int = 0
    active_campaigns: int = 0
    pipeline_value: float = 0.0
    pending_talent_approvals: int = 0
    outstanding_amount: float = 0.0
    revenue_mtd: float = 0.0
    expenses_mtd: float = 0.0
    degraded: list[str] = Field(default_factory=list)
    generated_at: datetime | None = None


def weighted_pipeline(campaigns: list[Any]) -> float:
    """Sum of budget * probability / 100 over campaigns."""
    return round(sum((c.budget or 0.0) * (c.probability or 0) / 100 for c in campaigns), 2)


class DashboardService:
    """Build DashboardSummary from the domain repositories.

    Any repository may be None (failed to initialize); its figures are then
    zero and marked degraded.

    Args:
        show_repository: ShowRepository.
        campaign_repository: CampaignRepository.
        talent_repository: TalentApprovalRepository.
        financial_repository: FinancialRepository.
        redis: redis.asyncio client, or None to disable caching.
        cache_ttl: Cache lifetime in seconds.
    """

    def __init__(
        self,
        show_repository: Any = None,
        campaign_repository: Any = None,
        talent_repository: Any = None,
        financial_repository: Any = None,
        redis: Any = None,
        cache_ttl: int = 60,
    ) -> None:
        self._shows = show_repository
        self._campaigns = campaign_repository
        self._talent = talent_repository
        self._financials = financial_repository
        self._redis = redis
        self._cache_ttl = cache_ttl

    async def _figure(
        self,
        org_id: str,
        name: str,
        source: Any,
        fetch: Callable[[], Awaitable[Any]],
        degraded: list[str],
    ) -> Any:
        if source is None:
            degraded.append(name)
            return 0
        try:
            return await fetch()
        except Exception:
            logger.warning("dashboard.figure_failed", org_id=org_id, figure=name, exc_info=True)
            degraded.append(name)
            return 0

    async def _read_cache(self, org_id: str) -> DashboardSummary | None:
        if self._redis is None:
            return None
        try:
            cached = await self._redis.get(org_key(org_id, CACHE_KEY))
        except Exception:
            logger.warning("dashboard.cache_read_failed", org_id=org_id, exc_info=True)
            return None
        if not cached:
            return None
        return DashboardSummary.model_validate_json(cached)

    async def _write_cache(self, org_id: str, summary: DashboardSummary) -> None:
        if self._redis is None or summary.degraded:
            return
        try:
            await self._redis.set(
                org_key(org_id, CACHE_KEY), summary.model_dump_json(), ex=self._cache_ttl
            )
        except Exception:
            logger.warning("dashboard.cache_write_failed", org_id=org_id, exc_info=True)

    async def get_summary(
        self, org_id: str, today: date | None = None, use_cache: bool = True
    ) -> DashboardSummary:
        if use_cache:
            cached = await self._read_cache(org_id)
            if cached is not None:
                return cached

        today = today or date.today()
        month = month_bounds(today.year, today.month)
        degraded: list[str] = []

        active_shows = await self._figure(
            org_id, "active_shows", self._shows,
            lambda: self._shows.count_active_shows(org_id), degraded,
        )
        active_campaigns = await self._figure(
            org_id, "active_campaigns", self._campaigns,
            lambda: self._campaigns.count_active_campaigns(org_id), degraded,
        )
        open_campaigns = await self._figure(
            org_id, "pipeline_value", self._campaigns,
            lambda: self._campaigns.list_open_campaigns(org_id), degraded,
        )
        pending = await self._figure(
            org_id, "pending_talent_approvals", self._talent,
            lambda: self._talent.count_pending(org_id), degraded,
        )
        outstanding = await self._figure(
            org_id, "outstanding_amount", self._financials,
            lambda: self._financials.list_outstanding_invoices(org_id), degraded,
        )
        revenue = await self._figure(
            org_id, "revenue_mtd", self._financials,
            lambda: self._financials.sum_payments(org_id, month.start, month.end), degraded,
        )
        expenses = await self._figure(
            org_id, "expenses_mtd", self._financials,
            lambda: self._financials.sum_expenses(org_id, month.start, month.end), degraded,
        )

        summary = DashboardSummary(
            active_shows=active_shows,
            active_campaigns=active_campaigns,
            pipeline_value=weighted_pipeline(open_campaigns or []),
            pending_talent_approvals=pending,
            outstanding_amount=round(sum(i.balance for i in (outstanding or [])), 2),
            revenue_mtd=round(revenue, 2),
            expenses_mtd=round(expenses, 2),
            degraded=degraded,
            generated_at=datetime.now(timezone.utc),
        )
        await self._write_cache(org_id, summary)
        return summary
