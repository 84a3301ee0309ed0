"""Tests for NotificationService and the notification endpoints."""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock

import pytest

from src.app.notifications.service import NotificationService


async def _notify(state, org_id, user_id: str, title: str = "Hello"):
    return await state.notification_service.notify(
        org_id, user_id, title, f"{title} message", category="test"
    )


# ── Service ──────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_notify_creates_notification(state, org_id):
    notification = await state.notification_service.notify(
        org_id,
        "user-1",
        "Invoice Paid",
        "INV-2026-00001 was paid",
        type="success",
        action_url="/invoices/1",
        metadata={"invoice_id": "1"},
    )
    assert notification.is_read is False
    assert notification.type == "success"
    assert notification.metadata == {"invoice_id": "1"}
    assert state.notification_repository.for_user("user-1") == [notification]


@pytest.mark.asyncio
async def test_notify_is_best_effort():
    """A failing repository is logged and swallowed, returning None."""
    repo = AsyncMock()
    repo.create_notification.side_effect = RuntimeError("db down")
    service = NotificationService(repo)

    result = await service.notify("org", "user-1", "Title", "Message")
    assert result is None
    repo.create_notification.assert_awaited_once()


# ── API ──────────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_list_only_own_notifications(make_client, state, org_id):
    user_id = uuid.uuid4()
    await _notify(state, org_id, str(user_id), "First")
    await _notify(state, org_id, str(user_id), "Second")
    await _notify(state, org_id, "someone-else", "Hidden")

    client = await make_client(role="sales", user_id=user_id)
    response = await client.get("/api/v1/notifications")
    assert response.status_code == 200
    assert [n["title"] for n in response.json()] == ["Second", "First"]


@pytest.mark.asyncio
async def test_mark_read_and_unread_filter(make_client, state, org_id):
    user_id = uuid.uuid4()
    first = await _notify(state, org_id, str(user_id), "First")
    await _notify(state, org_id, str(user_id), "Second")
    client = await make_client(role="sales", user_id=user_id)

    response = await client.post(f"/api/v1/notifications/{first.id}/read")
    assert response.status_code == 200
    assert response.json()["is_read"] is True
    assert response.json()["read_at"] is not None

    response = await client.get("/api/v1/notifications", params={"unread_only": "true"})
    assert [n["title"] for n in response.json()] == ["Second"]


@pytest.mark.asyncio
async def test_cannot_mark_another_users_notification(make_client, state, org_id):
    other = await _notify(state, org_id, "someone-else")
    client = await make_client(role="sales")
    response = await client.post(f"/api/v1/notifications/{other.id}/read")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_mark_all_read(make_client, state, org_id):
    user_id = uuid.uuid4()
    for title in ("A", "B", "C"):
        await _notify(state, org_id, str(user_id), title)
    client = await make_client(role="sales", user_id=user_id)

    response = await client.post("/api/v1/notifications/read-all")
    assert response.json() == {"updated": 3}

    response = await client.post("/api/v1/notifications/read-all")
    assert response.json() == {"updated": 0}


@pytest.mark.asyncio
async def test_notifications_503_when_not_initialized(make_client):
    client = await make_client(notification_repository=None)
    response = await client.get("/api/v1/notifications")
    assert response.status_code == 503
