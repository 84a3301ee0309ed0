"""Campaign repository -- async CRUD for campaigns and proposals.

Provides CampaignRepository with the session_factory callable pattern. All
methods take organization_id as first argument. Proposal items are
serialized via Pydantic model_dump(mode="json") and deserialized via
model_validate(); totals are recomputed on every read.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timezone

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.app.campaigns.models import CampaignModel, ProposalModel
from src.app.campaigns.proposals import calculate_totals, check_editable, next_status
from src.app.campaigns.schemas import (
    OPEN_CAMPAIGN_STATUSES,
    ApprovalStatus,
    CampaignCreate,
    CampaignFilter,
    CampaignRead,
    CampaignUpdate,
    ProposalCreate,
    ProposalFilter,
    ProposalItem,
    ProposalRead,
    ProposalUpdate,
)

logger = structlog.get_logger(__name__)


# ── Serialization Helpers ───────────────────────────────────────────────────


def _parse_id(value: str) -> uuid.UUID | None:
    """Parse a path id. Malformed ids match nothing."""
    try:
        return uuid.UUID(value)
    except ValueError:
        return None


def _uuid_or_none(value: str | None) -> uuid.UUID | None:
    return uuid.UUID(value) if value else None


def _str_or_none(value: uuid.UUID | None) -> str | None:
    return str(value) if value else None


def _model_to_campaign(model: CampaignModel) -> CampaignRead:
    """Convert CampaignModel to CampaignRead schema."""
    return CampaignRead(
        id=str(model.id),
        organization_id=str(model.organization_id),
        name=model.name,
        advertiser_name=model.advertiser_name,
        agency_name=model.agency_name,
        status=model.status,
        probability=model.probability or 0,
        budget=model.budget or 0.0,
        start_date=model.start_date,
        end_date=model.end_date,
        created_by=_str_or_none(model.created_by),
        is_active=model.is_active,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def _model_to_proposal(model: ProposalModel) -> ProposalRead:
    """Convert ProposalModel to ProposalRead schema."""
    items = [ProposalItem.model_validate(i) for i in (model.items or [])]
    return ProposalRead(
        id=str(model.id),
        organization_id=str(model.organization_id),
        campaign_id=_str_or_none(model.campaign_id),
        name=model.name,
        approval_status=model.approval_status,
        notes=model.notes,
        items=items,
        totals=calculate_totals(items),
        created_by=_str_or_none(model.created_by),
        submitted_by=_str_or_none(model.submitted_by),
        submitted_at=model.submitted_at,
        approved_by=_str_or_none(model.approved_by),
        approved_at=model.approved_at,
        rejection_reason=model.rejection_reason,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


# ── Repository ──────────────────────────────────────────────────────────────


class CampaignRepository:
    """Async CRUD operations for campaigns and proposals.

    Args:
        session_factory: Async callable that yields AsyncSession instances.
    """

    def __init__(
        self, session_factory: Callable[..., AsyncGenerator[AsyncSession, None]]
    ) -> None:
        self._session_factory = session_factory

    async def _get_campaign_model(
        self, session: AsyncSession, org_id: str, campaign_id: str
    ) -> CampaignModel | None:
        campaign_uuid = _parse_id(campaign_id)
        if campaign_uuid is None:
            return None
        stmt = select(CampaignModel).where(
            CampaignModel.organization_id == uuid.UUID(org_id),
            CampaignModel.id == campaign_uuid,
            CampaignModel.is_active.is_(True),
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def _get_proposal_model(
        self, session: AsyncSession, org_id: str, proposal_id: str
    ) -> ProposalModel:
        proposal_uuid = _parse_id(proposal_id)
        model = None
        if proposal_uuid is not None:
            stmt = select(ProposalModel).where(
                ProposalModel.organization_id == uuid.UUID(org_id),
                ProposalModel.id == proposal_uuid,
            )
            result = await session.execute(stmt)
            model = result.scalar_one_or_none()
        if model is None:
            raise ValueError(f"Proposal not found: org={org_id}, id={proposal_id}")
        return model

    # ── Campaigns ───────────────────────────────────────────────────────────

    async def create_campaign(
        self, org_id: str, data: CampaignCreate, created_by: str | None = None
    ) -> CampaignRead:
        async for session in self._session_factory():
            model = CampaignModel(
                organization_id=uuid.UUID(org_id),
                name=data.name,
                advertiser_name=data.advertiser_name,
                agency_name=data.agency_name,
                status=data.status.value,
                probability=data.probability,
                budget=data.budget,
                start_date=data.start_date,
                end_date=data.end_date,
                created_by=_uuid_or_none(created_by),
            )
            session.add(model)
            await session.commit()
            await session.refresh(model)
            logger.info("campaign.created", org_id=org_id, campaign_id=str(model.id))
            return _model_to_campaign(model)

    async def get_campaign(self, org_id: str, campaign_id: str) -> CampaignRead | None:
        async for session in self._session_factory():
            model = await self._get_campaign_model(session, org_id, campaign_id)
            if model is None:
                return None
            return _model_to_campaign(model)

    async def list_campaigns(
        self, org_id: str, filters: CampaignFilter | None = None
    ) -> list[CampaignRead]:
        """List active campaigns, most recently created first."""
        filters = filters or CampaignFilter()
        async for session in self._session_factory():
            stmt = select(CampaignModel).where(
                CampaignModel.organization_id == uuid.UUID(org_id),
                CampaignModel.is_active.is_(True),
            )
            if filters.status is not None:
                stmt = stmt.where(CampaignModel.status == filters.status.value)
            if filters.advertiser_name:
                stmt = stmt.where(
                    CampaignModel.advertiser_name.ilike(f"%{filters.advertiser_name}%")
                )
            stmt = (
                stmt.order_by(CampaignModel.created_at.desc())
                .limit(filters.limit)
                .offset(filters.offset)
            )
            result = await session.execute(stmt)
            return [_model_to_campaign(m) for m in result.scalars().all()]

    async def list_open_campaigns(self, org_id: str) -> list[CampaignRead]:
        """Active campaigns still in the pipeline (not completed or cancelled)."""
        async for session in self._session_factory():
            stmt = select(CampaignModel).where(
                CampaignModel.organization_id == uuid.UUID(org_id),
                CampaignModel.is_active.is_(True),
                CampaignModel.status.in_([s.value for s in OPEN_CAMPAIGN_STATUSES]),
            )
            result = await session.execute(stmt)
            return [_model_to_campaign(m) for m in result.scalars().all()]

    async def list_campaigns_overlapping(
        self, org_id: str, start: datetime, end: datetime
    ) -> list[CampaignRead]:
        """Campaigns whose flight overlaps [start, end], excluding cancelled ones."""
        async for session in self._session_factory():
            stmt = select(CampaignModel).where(
                CampaignModel.organization_id == uuid.UUID(org_id),
                CampaignModel.is_active.is_(True),
                CampaignModel.status != "cancelled",
                CampaignModel.start_date.is_not(None),
                CampaignModel.end_date.is_not(None),
                CampaignModel.start_date <= end,
                CampaignModel.end_date >= start,
            )
            result = await session.execute(stmt)
            return [_model_to_campaign(m) for m in result.scalars().all()]

    async def count_active_campaigns(self, org_id: str) -> int:
        async for session in self._session_factory():
            stmt = select(func.count()).select_from(CampaignModel).where(
                CampaignModel.organization_id == uuid.UUID(org_id),
                CampaignModel.is_active.is_(True),
                CampaignModel.status == "active",
            )
            result = await session.execute(stmt)
            return int(result.scalar_one())

    async def update_campaign(
        self, org_id: str, campaign_id: str, data: CampaignUpdate
    ) -> CampaignRead:
        """Update a campaign.

        Raises:
            ValueError: If campaign not found.
        """
        async for session in self._session_factory():
            model = await self._get_campaign_model(session, org_id, campaign_id)
            if model is None:
                raise ValueError(f"Campaign not found: org={org_id}, id={campaign_id}")

            for key, value in data.model_dump(exclude_none=True).items():
                if key == "status":
                    value = value.value
                setattr(model, key, value)

            model.updated_at = datetime.now(timezone.utc)
            await session.commit()
            await session.refresh(model)
            return _model_to_campaign(model)

    async def deactivate_campaign(self, org_id: str, campaign_id: str) -> None:
        """Soft-delete a campaign.

        Raises:
            ValueError: If campaign not found.
        """
        async for session in self._session_factory():
            model = await self._get_campaign_model(session, org_id, campaign_id)
            if model is None:
                raise ValueError(f"Campaign not found: org={org_id}, id={campaign_id}")
            model.is_active = False
            model.updated_at = datetime.now(timezone.utc)
            await session.commit()

    # ── Proposals ───────────────────────────────────────────────────────────

    async def create_proposal(
        self, org_id: str, data: ProposalCreate, created_by: str | None = None
    ) -> ProposalRead:
        async for session in self._session_factory():
            model = ProposalModel(
                organization_id=uuid.UUID(org_id),
                campaign_id=_uuid_or_none(data.campaign_id),
                name=data.name,
                notes=data.notes,
                approval_status=ApprovalStatus.DRAFT.value,
                items=[i.model_dump(mode="json") for i in data.items],
                created_by=_uuid_or_none(created_by),
            )
            session.add(model)
            await session.commit()
            await session.refresh(model)
            logger.info("proposal.created", org_id=org_id, proposal_id=str(model.id))
            return _model_to_proposal(model)

    async def get_proposal(self, org_id: str, proposal_id: str) -> ProposalRead | None:
        async for session in self._session_factory():
            try:
                model = await self._get_proposal_model(session, org_id, proposal_id)
            except ValueError:
                return None
            return _model_to_proposal(model)

    async def list_proposals(
        self, org_id: str, filters: ProposalFilter | None = None
    ) -> list[ProposalRead]:
        filters = filters or ProposalFilter()
        async for session in self._session_factory():
            stmt = select(ProposalModel).where(
                ProposalModel.organization_id == uuid.UUID(org_id),
            )
            if filters.approval_status is not None:
                stmt = stmt.where(ProposalModel.approval_status == filters.approval_status.value)
            if filters.campaign_id is not None:
                stmt = stmt.where(ProposalModel.campaign_id == uuid.UUID(filters.campaign_id))
            stmt = (
                stmt.order_by(ProposalModel.created_at.desc())
                .limit(filters.limit)
                .offset(filters.offset)
            )
            result = await session.execute(stmt)
            return [_model_to_proposal(m) for m in result.scalars().all()]

    async def update_proposal(
        self, org_id: str, proposal_id: str, data: ProposalUpdate
    ) -> ProposalRead:
        """Edit a draft or rejected proposal; a rejected one returns to draft.

        Raises:
            ValueError: If proposal not found.
            ProposalStateError: If the proposal is pending or approved.
        """
        async for session in self._session_factory():
            model = await self._get_proposal_model(session, org_id, proposal_id)
            check_editable(ApprovalStatus(model.approval_status))

            update_data = data.model_dump(exclude_none=True)
            if "name" in update_data:
                model.name = data.name
            if "notes" in update_data:
                model.notes = data.notes
            if "campaign_id" in update_data:
                model.campaign_id = uuid.UUID(data.campaign_id)
            if data.items is not None:
                model.items = [i.model_dump(mode="json") for i in data.items]

            model.approval_status = ApprovalStatus.DRAFT.value
            model.rejection_reason = None
            model.updated_at = datetime.now(timezone.utc)
            await session.commit()
            await session.refresh(model)
            return _model_to_proposal(model)

    async def transition_proposal(
        self,
        org_id: str,
        proposal_id: str,
        action: str,
        user_id: str,
        reason: str | None = None,
    ) -> ProposalRead:
        """Apply a submit / approve / reject action.

        Raises:
            ValueError: If proposal not found.
            ProposalStateError: If the action is not allowed.
        """
        async for session in self._session_factory():
            model = await self._get_proposal_model(session, org_id, proposal_id)
            target = next_status(
                action,
                ApprovalStatus(model.approval_status),
                item_count=len(model.items or []),
            )
            now = datetime.now(timezone.utc)
            if action == "submit":
                model.submitted_by = uuid.UUID(user_id)
                model.submitted_at = now
            elif action == "approve":
                model.approved_by = uuid.UUID(user_id)
                model.approved_at = now
            elif action == "reject":
                model.rejection_reason = reason

            model.approval_status = target.value
            model.updated_at = now
            await session.commit()
            await session.refresh(model)
            logger.info(
                "proposal.transitioned",
                org_id=org_id,
                proposal_id=proposal_id,
                action=action,
                status=target.value,
            )
            return _model_to_proposal(model)

    async def delete_proposal(self, org_id: str, proposal_id: str) -> None:
        """Hard-delete a draft proposal.

        Raises:
            ValueError: If proposal not found.
            ProposalStateError: If the proposal is not a draft.
        """
        async for session in self._session_factory():
            model = await self._get_proposal_model(session, org_id, proposal_id)
            next_status("delete", ApprovalStatus(model.approval_status))
            await session.delete(model)
            await session.commit()

    async def list_campaign_items(self, org_id: str, campaign_id: str) -> list[ProposalItem]:
        """All line items of the campaign's non-rejected proposals."""
        async for session in self._session_factory():
            stmt = select(ProposalModel).where(
                ProposalModel.organization_id == uuid.UUID(org_id),
                ProposalModel.campaign_id == uuid.UUID(campaign_id),
                ProposalModel.approval_status != ApprovalStatus.REJECTED.value,
            )
            result = await session.execute(stmt)
            items: list[ProposalItem] = []
            for model in result.scalars().all():
                items.extend(ProposalItem.model_validate(i) for i in (model.items or []))
            return items
