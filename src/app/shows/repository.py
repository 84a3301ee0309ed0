"""Show repository -- async CRUD for shows, episodes, and audience metrics.

Provides ShowRepository with the session_factory callable pattern. All
methods take organization_id as first argument for organization-scoped
queries. Soft-deleted rows (is_active = false) are hidden from reads and
aggregates.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timedelta, timezone

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.app.shows.models import EpisodeModel, ShowModel
from src.app.shows.schemas import (
    EpisodeCreate,
    EpisodeFilter,
    EpisodeRead,
    EpisodeStatus,
    EpisodeUpdate,
    MonetizationSettings,
    PlacementRate,
    RevenueSharing,
    RevenueSharingType,
    ShowCreate,
    ShowFilter,
    ShowMetrics,
    ShowRead,
    ShowUpdate,
)

logger = structlog.get_logger(__name__)

_PLACEMENTS = ("pre_roll", "mid_roll", "post_roll")


# ── Serialization Helpers ───────────────────────────────────────────────────


def _parse_id(value: str) -> uuid.UUID | None:
    """Parse a path id. Malformed ids match nothing."""
    try:
        return uuid.UUID(value)
    except ValueError:
        return None


def _model_to_show(model: ShowModel) -> ShowRead:
    """Convert ShowModel to ShowRead schema."""
    rates = {
        placement: PlacementRate(
            cpm=getattr(model, f"{placement}_cpm"),
            spot_cost=getattr(model, f"{placement}_spot_cost"),
            slots=getattr(model, f"{placement}_slots"),
        )
        for placement in _PLACEMENTS
    }
    return ShowRead(
        id=str(model.id),
        organization_id=str(model.organization_id),
        name=model.name,
        description=model.description,
        host_name=model.host_name,
        talent_user_id=str(model.talent_user_id) if model.talent_user_id else None,
        category=model.category,
        is_active=model.is_active,
        monetization=MonetizationSettings(
            pricing_model=model.pricing_model or "cpm",
            avg_episode_downloads=model.avg_episode_downloads,
            sellout_projection=model.sellout_projection,
            **rates,
        ),
        estimated_episode_value=model.estimated_episode_value,
        revenue_sharing=RevenueSharing(
            type=model.revenue_sharing_type or RevenueSharingType.NONE,
            percentage=model.revenue_sharing_percentage,
            fixed_amount=model.revenue_sharing_fixed_amount,
            notes=model.revenue_sharing_notes,
        ),
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def _model_to_episode(model: EpisodeModel) -> EpisodeRead:
    """Convert EpisodeModel to EpisodeRead schema."""
    return EpisodeRead(
        id=str(model.id),
        organization_id=str(model.organization_id),
        show_id=str(model.show_id),
        title=model.title,
        episode_number=model.episode_number,
        air_date=model.air_date,
        status=model.status,
        duration_seconds=model.duration_seconds,
        downloads=model.downloads or 0,
        youtube_views=model.youtube_views or 0,
        is_active=model.is_active,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def _apply_monetization(model: ShowModel, settings: MonetizationSettings) -> None:
    model.pricing_model = settings.pricing_model.value
    model.avg_episode_downloads = settings.avg_episode_downloads
    model.sellout_projection = settings.sellout_projection
    for placement in _PLACEMENTS:
        rate: PlacementRate = getattr(settings, placement)
        setattr(model, f"{placement}_cpm", rate.cpm)
        setattr(model, f"{placement}_spot_cost", rate.spot_cost)
        setattr(model, f"{placement}_slots", rate.slots)


# ── Repository ──────────────────────────────────────────────────────────────


class ShowRepository:
    """Async CRUD operations for shows and episodes.

    Args:
        session_factory: Async callable that yields AsyncSession instances.
    """

    def __init__(
        self, session_factory: Callable[..., AsyncGenerator[AsyncSession, None]]
    ) -> None:
        self._session_factory = session_factory

    async def _get_show_model(
        self, session: AsyncSession, org_id: str, show_id: str
    ) -> ShowModel | None:
        show_uuid = _parse_id(show_id)
        if show_uuid is None:
            return None
        stmt = select(ShowModel).where(
            ShowModel.organization_id == uuid.UUID(org_id),
            ShowModel.id == show_uuid,
            ShowModel.is_active.is_(True),
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def _get_episode_model(
        self, session: AsyncSession, org_id: str, episode_id: str
    ) -> EpisodeModel | None:
        episode_uuid = _parse_id(episode_id)
        if episode_uuid is None:
            return None
        stmt = select(EpisodeModel).where(
            EpisodeModel.organization_id == uuid.UUID(org_id),
            EpisodeModel.id == episode_uuid,
            EpisodeModel.is_active.is_(True),
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    # ── Shows ───────────────────────────────────────────────────────────────

    async def create_show(
        self,
        org_id: str,
        data: ShowCreate,
        estimated_episode_value: float | None = None,
    ) -> ShowRead:
        """Create a new show, optionally with initial monetization settings."""
        async for session in self._session_factory():
            model = ShowModel(
                organization_id=uuid.UUID(org_id),
                name=data.name,
                description=data.description,
                host_name=data.host_name,
                talent_user_id=uuid.UUID(data.talent_user_id) if data.talent_user_id else None,
                category=data.category,
            )
            if data.monetization is not None:
                _apply_monetization(model, data.monetization)
                model.estimated_episode_value = estimated_episode_value
            session.add(model)
            await session.commit()
            await session.refresh(model)
            logger.info("show.created", org_id=org_id, show_id=str(model.id))
            return _model_to_show(model)

    async def get_show(self, org_id: str, show_id: str) -> ShowRead | None:
        """Get an active show by ID, or None."""
        async for session in self._session_factory():
            model = await self._get_show_model(session, org_id, show_id)
            if model is None:
                return None
            return _model_to_show(model)

    async def list_shows(
        self, org_id: str, filters: ShowFilter | None = None
    ) -> list[ShowRead]:
        """List active shows ordered by name."""
        filters = filters or ShowFilter()
        async for session in self._session_factory():
            stmt = select(ShowModel).where(
                ShowModel.organization_id == uuid.UUID(org_id),
                ShowModel.is_active.is_(True),
            )
            if filters.category is not None:
                stmt = stmt.where(ShowModel.category == filters.category)
            if filters.search:
                stmt = stmt.where(ShowModel.name.ilike(f"%{filters.search}%"))
            stmt = stmt.order_by(ShowModel.name).limit(filters.limit).offset(filters.offset)
            result = await session.execute(stmt)
            return [_model_to_show(m) for m in result.scalars().all()]

    async def count_active_shows(self, org_id: str) -> int:
        async for session in self._session_factory():
            stmt = select(func.count()).select_from(ShowModel).where(
                ShowModel.organization_id == uuid.UUID(org_id),
                ShowModel.is_active.is_(True),
            )
            result = await session.execute(stmt)
            return int(result.scalar_one())

    async def update_show(
        self, org_id: str, show_id: str, data: ShowUpdate
    ) -> ShowRead:
        """Update descriptive show fields.

        Raises:
            ValueError: If show not found.
        """
        async for session in self._session_factory():
            model = await self._get_show_model(session, org_id, show_id)
            if model is None:
                raise ValueError(f"Show not found: org={org_id}, id={show_id}")

            for key, value in data.model_dump(exclude_unset=True).items():
                if key == "talent_user_id" and value is not None:
                    value = uuid.UUID(value)
                setattr(model, key, value)

            model.updated_at = datetime.now(timezone.utc)
            await session.commit()
            await session.refresh(model)
            return _model_to_show(model)

    async def update_monetization(
        self,
        org_id: str,
        show_id: str,
        settings: MonetizationSettings,
        estimated_episode_value: float,
    ) -> ShowRead:
        """Persist monetization settings together with the computed episode value.

        Raises:
            ValueError: If show not found.
        """
        async for session in self._session_factory():
            model = await self._get_show_model(session, org_id, show_id)
            if model is None:
                raise ValueError(f"Show not found: org={org_id}, id={show_id}")

            _apply_monetization(model, settings)
            model.estimated_episode_value = estimated_episode_value
            model.updated_at = datetime.now(timezone.utc)
            await session.commit()
            await session.refresh(model)
            logger.info(
                "show.monetization_updated",
                org_id=org_id,
                show_id=show_id,
                estimated_episode_value=estimated_episode_value,
            )
            return _model_to_show(model)

    async def update_revenue_sharing(
        self, org_id: str, show_id: str, sharing: RevenueSharing
    ) -> ShowRead:
        """Replace the show's talent revenue sharing agreement.

        Raises:
            ValueError: If show not found.
        """
        async for session in self._session_factory():
            model = await self._get_show_model(session, org_id, show_id)
            if model is None:
                raise ValueError(f"Show not found: org={org_id}, id={show_id}")

            model.revenue_sharing_type = sharing.type.value
            model.revenue_sharing_percentage = sharing.percentage
            model.revenue_sharing_fixed_amount = sharing.fixed_amount
            model.revenue_sharing_notes = sharing.notes
            model.updated_at = datetime.now(timezone.utc)
            await session.commit()
            await session.refresh(model)
            return _model_to_show(model)

    async def deactivate_show(self, org_id: str, show_id: str) -> None:
        """Soft-delete a show.

        Raises:
            ValueError: If show not found.
        """
        async for session in self._session_factory():
            model = await self._get_show_model(session, org_id, show_id)
            if model is None:
                raise ValueError(f"Show not found: org={org_id}, id={show_id}")
            model.is_active = False
            model.updated_at = datetime.now(timezone.utc)
            await session.commit()
            logger.info("show.deactivated", org_id=org_id, show_id=show_id)

    async def get_show_metrics(
        self, org_id: str, show_id: str, window_days: int = 90
    ) -> ShowMetrics:
        """Average downloads and YouTube views of recently published episodes."""
        since = datetime.now(timezone.utc) - timedelta(days=window_days)
        async for session in self._session_factory():
            stmt = select(
                func.count(EpisodeModel.id),
                func.avg(EpisodeModel.downloads),
                func.avg(EpisodeModel.youtube_views),
            ).where(
                EpisodeModel.organization_id == uuid.UUID(org_id),
                EpisodeModel.show_id == uuid.UUID(show_id),
                EpisodeModel.is_active.is_(True),
                EpisodeModel.status == EpisodeStatus.PUBLISHED.value,
                EpisodeModel.air_date >= since,
            )
            result = await session.execute(stmt)
            count, avg_downloads, avg_views = result.one()
            return ShowMetrics(
                show_id=show_id,
                episode_count=count or 0,
                avg_episode_downloads=float(avg_downloads or 0),
                avg_youtube_views=float(avg_views or 0),
                window_days=window_days,
            )

    # ── Episodes ────────────────────────────────────────────────────────────

    async def create_episode(self, org_id: str, data: EpisodeCreate) -> EpisodeRead:
        """Create an episode for an existing show.

        Raises:
            ValueError: If the show does not exist or is inactive.
        """
        async for session in self._session_factory():
            if await self._get_show_model(session, org_id, data.show_id) is None:
                raise ValueError(f"Show not found: org={org_id}, id={data.show_id}")

            model = EpisodeModel(
                organization_id=uuid.UUID(org_id),
                show_id=uuid.UUID(data.show_id),
                title=data.title,
                episode_number=data.episode_number,
                air_date=data.air_date,
                status=data.status.value,
                duration_seconds=data.duration_seconds,
                downloads=data.downloads,
                youtube_views=data.youtube_views,
            )
            session.add(model)
            await session.commit()
            await session.refresh(model)
            return _model_to_episode(model)

    async def get_episode(self, org_id: str, episode_id: str) -> EpisodeRead | None:
        async for session in self._session_factory():
            model = await self._get_episode_model(session, org_id, episode_id)
            if model is None:
                return None
            return _model_to_episode(model)

    async def list_episodes(
        self, org_id: str, filters: EpisodeFilter | None = None
    ) -> list[EpisodeRead]:
        """List active episodes, newest air date first."""
        filters = filters or EpisodeFilter()
        async for session in self._session_factory():
            stmt = select(EpisodeModel).where(
                EpisodeModel.organization_id == uuid.UUID(org_id),
                EpisodeModel.is_active.is_(True),
            )
            if filters.show_id is not None:
                stmt = stmt.where(EpisodeModel.show_id == uuid.UUID(filters.show_id))
            if filters.status is not None:
                stmt = stmt.where(EpisodeModel.status == filters.status.value)
            stmt = (
                stmt.order_by(EpisodeModel.air_date.desc().nulls_last())
                .limit(filters.limit)
                .offset(filters.offset)
            )
            result = await session.execute(stmt)
            return [_model_to_episode(m) for m in result.scalars().all()]

    async def update_episode(
        self, org_id: str, episode_id: str, data: EpisodeUpdate
    ) -> EpisodeRead:
        """Update an episode.

        Raises:
            ValueError: If episode not found.
        """
        async for session in self._session_factory():
            model = await self._get_episode_model(session, org_id, episode_id)
            if model is None:
                raise ValueError(f"Episode not found: org={org_id}, id={episode_id}")

            for key, value in data.model_dump(exclude_none=True, mode="json").items():
                if key == "air_date":
                    value = data.air_date
                setattr(model, key, value)

            model.updated_at = datetime.now(timezone.utc)
            await session.commit()
            await session.refresh(model)
            return _model_to_episode(model)

    async def deactivate_episode(self, org_id: str, episode_id: str) -> None:
        """Soft-delete an episode.

        Raises:
            ValueError: If episode not found.
        """
        async for session in self._session_factory():
            model = await self._get_episode_model(session, org_id, episode_id)
            if model is None:
                raise ValueError(f"Episode not found: org={org_id}, id={episode_id}")
            model.is_active = False
            model.updated_at = datetime.now(timezone.utc)
            await session.commit()
