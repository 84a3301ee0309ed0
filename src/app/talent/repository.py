"""Talent approval repository -- async CRUD with the session_factory pattern."""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.app.talent.models import TalentApprovalModel
from src.app.talent.schemas import (
    ACTIVE_APPROVAL_STATUSES,
    CampaignClearance,
    TalentApprovalCreate,
    TalentApprovalFilter,
    TalentApprovalRead,
    TalentApprovalStatus,
)


def _parse_id(value: str) -> uuid.UUID | None:
    """Parse a path id. Malformed ids match nothing."""
    try:
        return uuid.UUID(value)
    except ValueError:
        return None


def _model_to_approval(model: TalentApprovalModel) -> TalentApprovalRead:
    """Convert TalentApprovalModel to TalentApprovalRead schema."""
    return TalentApprovalRead(
        id=str(model.id),
        organization_id=str(model.organization_id),
        campaign_id=str(model.campaign_id),
        show_id=str(model.show_id),
        talent_id=str(model.talent_id),
        spot_type=model.spot_type,
        status=model.status,
        requested_by=str(model.requested_by) if model.requested_by else None,
        requested_at=model.requested_at,
        responded_by=str(model.responded_by) if model.responded_by else None,
        responded_at=model.responded_at,
        comments=model.comments,
        denial_reason=model.denial_reason,
        expires_at=model.expires_at,
        summary_data=model.summary_data or {},
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


class TalentApprovalRepository:
    """Async CRUD operations for talent approval requests.

    Args:
        session_factory: Async callable that yields AsyncSession instances.
    """

    def __init__(
        self, session_factory: Callable[..., AsyncGenerator[AsyncSession, None]]
    ) -> None:
        self._session_factory = session_factory

    async def _get_approval_model(
        self, session: AsyncSession, org_id: str, approval_id: str
    ) -> TalentApprovalModel | None:
        approval_uuid = _parse_id(approval_id)
        if approval_uuid is None:
            return None
        stmt = select(TalentApprovalModel).where(
            TalentApprovalModel.organization_id == uuid.UUID(org_id),
            TalentApprovalModel.id == approval_uuid,
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def create_approval(
        self,
        org_id: str,
        data: TalentApprovalCreate,
        requested_by: str | None,
        expires_at: datetime,
    ) -> TalentApprovalRead:
        async for session in self._session_factory():
            model = TalentApprovalModel(
                organization_id=uuid.UUID(org_id),
                campaign_id=uuid.UUID(data.campaign_id),
                show_id=uuid.UUID(data.show_id),
                talent_id=uuid.UUID(data.talent_id),
                spot_type=data.spot_type.value,
                status=TalentApprovalStatus.PENDING.value,
                requested_by=uuid.UUID(requested_by) if requested_by else None,
                requested_at=datetime.now(timezone.utc),
                expires_at=expires_at,
                summary_data=data.summary_data,
            )
            session.add(model)
            await session.commit()
            await session.refresh(model)
            return _model_to_approval(model)

    async def get_approval(self, org_id: str, approval_id: str) -> TalentApprovalRead | None:
        async for session in self._session_factory():
            model = await self._get_approval_model(session, org_id, approval_id)
            if model is None:
                return None
            return _model_to_approval(model)

    async def find_active(
        self, org_id: str, campaign_id: str, show_id: str, talent_id: str
    ) -> TalentApprovalRead | None:
        """Pending or approved request for the same campaign/show/talent, if any."""
        async for session in self._session_factory():
            stmt = select(TalentApprovalModel).where(
                TalentApprovalModel.organization_id == uuid.UUID(org_id),
                TalentApprovalModel.campaign_id == uuid.UUID(campaign_id),
                TalentApprovalModel.show_id == uuid.UUID(show_id),
                TalentApprovalModel.talent_id == uuid.UUID(talent_id),
                TalentApprovalModel.status.in_([s.value for s in ACTIVE_APPROVAL_STATUSES]),
            )
            result = await session.execute(stmt)
            model = result.scalars().first()
            if model is None:
                return None
            return _model_to_approval(model)

    async def list_approvals(
        self, org_id: str, filters: TalentApprovalFilter | None = None
    ) -> list[TalentApprovalRead]:
        filters = filters or TalentApprovalFilter()
        async for session in self._session_factory():
            stmt = select(TalentApprovalModel).where(
                TalentApprovalModel.organization_id == uuid.UUID(org_id),
            )
            if filters.status is not None:
                stmt = stmt.where(TalentApprovalModel.status == filters.status.value)
            if filters.campaign_id is not None:
                stmt = stmt.where(TalentApprovalModel.campaign_id == uuid.UUID(filters.campaign_id))
            if filters.talent_id is not None:
                stmt = stmt.where(TalentApprovalModel.talent_id == uuid.UUID(filters.talent_id))
            stmt = (
                stmt.order_by(TalentApprovalModel.requested_at.desc())
                .limit(filters.limit)
                .offset(filters.offset)
            )
            result = await session.execute(stmt)
            return [_model_to_approval(m) for m in result.scalars().all()]

    async def record_response(
        self,
        org_id: str,
        approval_id: str,
        status: TalentApprovalStatus,
        responded_by: str | None,
        comments: str | None = None,
        denial_reason: str | None = None,
    ) -> TalentApprovalRead:
        """Store the talent's answer (or an expiry).

        Raises:
            ValueError: If approval not found.
        """
        async for session in self._session_factory():
            model = await self._get_approval_model(session, org_id, approval_id)
            if model is None:
                raise ValueError(f"Talent approval not found: org={org_id}, id={approval_id}")

            now = datetime.now(timezone.utc)
            model.status = status.value
            if status != TalentApprovalStatus.EXPIRED:
                model.responded_by = uuid.UUID(responded_by) if responded_by else None
                model.responded_at = now
                model.comments = comments
                model.denial_reason = denial_reason
            model.updated_at = now
            await session.commit()
            await session.refresh(model)
            return _model_to_approval(model)

    async def expire_stale(self, org_id: str, now: datetime | None = None) -> int:
        """Mark pending requests past their expiry as expired. Returns the count."""
        now = now or datetime.now(timezone.utc)
        async for session in self._session_factory():
            stmt = (
                update(TalentApprovalModel)
                .where(
                    TalentApprovalModel.organization_id == uuid.UUID(org_id),
                    TalentApprovalModel.status == TalentApprovalStatus.PENDING.value,
                    TalentApprovalModel.expires_at < now,
                )
                .values(status=TalentApprovalStatus.EXPIRED.value, updated_at=now)
            )
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount or 0

    async def get_clearance(self, org_id: str, campaign_id: str) -> CampaignClearance:
        """Count the campaign's requests by status."""
        campaign_uuid = _parse_id(campaign_id)
        if campaign_uuid is None:
            return CampaignClearance(campaign_id=campaign_id)
        async for session in self._session_factory():
            stmt = (
                select(TalentApprovalModel.status, func.count())
                .where(
                    TalentApprovalModel.organization_id == uuid.UUID(org_id),
                    TalentApprovalModel.campaign_id == campaign_uuid,
                )
                .group_by(TalentApprovalModel.status)
            )
            result = await session.execute(stmt)
            counts = {status: count for status, count in result.all()}
            return CampaignClearance(campaign_id=campaign_id, **counts)

    async def count_pending(self, org_id: str) -> int:
        async for session in self._session_factory():
            stmt = select(func.count()).select_from(TalentApprovalModel).where(
                TalentApprovalModel.organization_id == uuid.UUID(org_id),
                TalentApprovalModel.status == TalentApprovalStatus.PENDING.value,
            )
            result = await session.execute(stmt)
            return int(result.scalar_one())
