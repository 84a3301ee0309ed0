"""Notification repository -- async CRUD scoped to organization and recipient."""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.app.notifications.models import NotificationModel
from src.app.notifications.schemas import NotificationCreate, NotificationRead


def _model_to_notification(model: NotificationModel) -> NotificationRead:
    return NotificationRead(
        id=str(model.id),
        user_id=str(model.user_id),
        title=model.title,
        message=model.message,
        type=model.type,
        category=model.category,
        action_url=model.action_url,
        metadata=model.metadata_json or {},
        is_read=model.is_read,
        read_at=model.read_at,
        created_at=model.created_at,
    )


class NotificationRepository:
    """Async CRUD operations for notifications.

    Args:
        session_factory: Async callable that yields AsyncSession instances.
    """

    def __init__(
        self, session_factory: Callable[..., AsyncGenerator[AsyncSession, None]]
    ) -> None:
        self._session_factory = session_factory

    async def create_notification(
        self, org_id: str, data: NotificationCreate
    ) -> NotificationRead:
        async for session in self._session_factory():
            model = NotificationModel(
                organization_id=uuid.UUID(org_id),
                user_id=uuid.UUID(data.user_id),
                title=data.title,
                message=data.message,
                type=data.type,
                category=data.category,
                action_url=data.action_url,
                metadata_json=data.metadata,
            )
            session.add(model)
            await session.commit()
            await session.refresh(model)
            return _model_to_notification(model)

    async def list_notifications(
        self, org_id: str, user_id: str, unread_only: bool = False, limit: int = 50
    ) -> list[NotificationRead]:
        """Newest first."""
        async for session in self._session_factory():
            stmt = select(NotificationModel).where(
                NotificationModel.organization_id == uuid.UUID(org_id),
                NotificationModel.user_id == uuid.UUID(user_id),
            )
            if unread_only:
                stmt = stmt.where(NotificationModel.is_read.is_(False))
            stmt = stmt.order_by(NotificationModel.created_at.desc()).limit(limit)
            result = await session.execute(stmt)
            return [_model_to_notification(m) for m in result.scalars().all()]

    async def mark_read(
        self, org_id: str, user_id: str, notification_id: str
    ) -> NotificationRead:
        """Mark one of the user's notifications read.

        Raises:
            ValueError: If the notification does not exist for this user.
        """
        async for session in self._session_factory():
            stmt = select(NotificationModel).where(
                NotificationModel.organization_id == uuid.UUID(org_id),
                NotificationModel.user_id == uuid.UUID(user_id),
                NotificationModel.id == uuid.UUID(notification_id),
            )
            result = await session.execute(stmt)
            model = result.scalar_one_or_none()
            if model is None:
                raise ValueError(f"Notification not found: id={notification_id}")
            if not model.is_read:
                model.is_read = True
                model.read_at = datetime.now(timezone.utc)
                await session.commit()
                await session.refresh(model)
            return _model_to_notification(model)

    async def mark_all_read(self, org_id: str, user_id: str) -> int:
        """Mark every unread notification of the user read. Returns the count."""
        async for session in self._session_factory():
            stmt = (
                update(NotificationModel)
                .where(
                    NotificationModel.organization_id == uuid.UUID(org_id),
                    NotificationModel.user_id == uuid.UUID(user_id),
                    NotificationModel.is_read.is_(False),
                )
                .values(is_read=True, read_at=datetime.now(timezone.utc))
            )
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount or 0
