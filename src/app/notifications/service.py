"""Best-effort notifier used by workflows.

A failed notification never fails the operation that triggered it: the
error is logged and None is returned.
"""

from __future__ import annotations

from typing import Any

import structlog

from src.app.notifications.schemas import NotificationCreate, NotificationRead

logger = structlog.get_logger(__name__)


class NotificationService:
    """Create notifications through a NotificationRepository-compatible object."""

    def __init__(self, repository: Any) -> None:
        self._repository = repository

    async def notify(
        self,
        org_id: str,
        user_id: str,
        title: str,
        message: str,
        *,
        type: str = "info",
        category: str | None = None,
        action_url: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> NotificationRead | None:
        data = NotificationCreate(
            user_id=user_id,
            title=title,
            message=message,
            type=type,
            category=category,
            action_url=action_url,
            metadata=metadata or {},
        )
        try:
            return await self._repository.create_notification(org_id, data)
        except Exception:
            logger.warning(
                "notification.create_failed",
                org_id=org_id,
                user_id=user_id,
                title=title,
                exc_info=True,
            )
            return None
