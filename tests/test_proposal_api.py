"""Integration tests for proposal endpoints and the approval workflow."""

from __future__ import annotations

import uuid

import pytest

ITEMS = [
    {
        "show_id": "show-1",
        "placement_type": "pre_roll",
        "quantity": 2,
        "rate_card_price": 300,
        "negotiated_price": 250,
    },
    {
        "show_id": "show-2",
        "placement_type": "mid_roll",
        "quantity": 1,
        "rate_card_price": 600,
        "negotiated_price": 600,
    },
]


async def _create_proposal(client, items=None, **overrides):
    body = {"name": "Q3 Package", "items": ITEMS if items is None else items, **overrides}
    response = await client.post("/api/v1/proposals", json=body)
    assert response.status_code == 201
    return response.json()


# ── CRUD ─────────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_create_proposal_computes_totals(client):
    """POST /api/v1/proposals -> 201 in draft with gross/net totals."""
    proposal = await _create_proposal(client)
    assert proposal["approval_status"] == "draft"
    totals = proposal["totals"]
    assert totals["slot_count"] == 3
    assert totals["gross_total"] == pytest.approx(1200.0)
    assert totals["net_total"] == pytest.approx(1100.0)
    assert totals["discount_percentage"] == pytest.approx(8.3)


@pytest.mark.asyncio
async def test_create_proposal_unknown_campaign(client):
    response = await client.post(
        "/api/v1/proposals", json={"name": "Orphan", "campaign_id": "missing", "items": []}
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_list_proposals_by_status(client):
    first = await _create_proposal(client)
    await _create_proposal(client, name="Other")
    await client.post(f"/api/v1/proposals/{first['id']}/submit")

    response = await client.get("/api/v1/proposals", params={"approval_status": "pending_approval"})
    assert [p["id"] for p in response.json()] == [first["id"]]


@pytest.mark.asyncio
async def test_update_draft_proposal_recomputes_totals(client):
    proposal = await _create_proposal(client)
    response = await client.patch(
        f"/api/v1/proposals/{proposal['id']}", json={"items": ITEMS[:1]}
    )
    assert response.status_code == 200
    assert response.json()["totals"]["gross_total"] == pytest.approx(600.0)


# ── Workflow ─────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_submit_and_approve(client):
    proposal = await _create_proposal(client)

    response = await client.post(f"/api/v1/proposals/{proposal['id']}/submit")
    assert response.status_code == 200
    assert response.json()["approval_status"] == "pending_approval"
    assert response.json()["submitted_by"] is not None

    response = await client.post(f"/api/v1/proposals/{proposal['id']}/approve")
    assert response.status_code == 200
    assert response.json()["approval_status"] == "approved"
    assert response.json()["approved_at"] is not None


@pytest.mark.asyncio
async def test_submit_empty_proposal_conflicts(client):
    proposal = await _create_proposal(client, items=[])
    response = await client.post(f"/api/v1/proposals/{proposal['id']}/submit")
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_pending_proposal_cannot_be_edited(client):
    proposal = await _create_proposal(client)
    await client.post(f"/api/v1/proposals/{proposal['id']}/submit")
    response = await client.patch(f"/api/v1/proposals/{proposal['id']}", json={"notes": "x"})
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_reject_then_edit_returns_to_draft(client):
    proposal = await _create_proposal(client)
    await client.post(f"/api/v1/proposals/{proposal['id']}/submit")

    response = await client.post(
        f"/api/v1/proposals/{proposal['id']}/reject", json={"reason": "Rate too low"}
    )
    assert response.status_code == 200
    assert response.json()["approval_status"] == "rejected"
    assert response.json()["rejection_reason"] == "Rate too low"

    response = await client.patch(f"/api/v1/proposals/{proposal['id']}", json={"notes": "Revised"})
    assert response.status_code == 200
    assert response.json()["approval_status"] == "draft"
    assert response.json()["rejection_reason"] is None


@pytest.mark.asyncio
async def test_reject_requires_reason(client):
    proposal = await _create_proposal(client)
    await client.post(f"/api/v1/proposals/{proposal['id']}/submit")
    response = await client.post(f"/api/v1/proposals/{proposal['id']}/reject", json={"reason": ""})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_approve_draft_conflicts(client):
    proposal = await _create_proposal(client)
    response = await client.post(f"/api/v1/proposals/{proposal['id']}/approve")
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_approve_requires_approver_role(make_client):
    """A producer cannot approve proposals -> 403."""
    producer = await make_client(role="producer")
    proposal = await _create_proposal(producer)
    await producer.post(f"/api/v1/proposals/{proposal['id']}/submit")

    response = await producer.post(f"/api/v1/proposals/{proposal['id']}/approve")
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_approval_notifies_creator(make_client, state):
    creator_id = uuid.uuid4()
    seller = await make_client(role="sales", user_id=creator_id)
    proposal = await _create_proposal(seller)
    await seller.post(f"/api/v1/proposals/{proposal['id']}/submit")

    admin = await make_client(role="admin")
    await admin.post(f"/api/v1/proposals/{proposal['id']}/approve")

    notified = state.notification_repository.for_user(str(creator_id))
    assert [n.title for n in notified] == ["Proposal Approved"]
    assert notified[0].metadata["proposal_id"] == proposal["id"]


@pytest.mark.asyncio
async def test_unknown_proposal_transition(client):
    response = await client.post("/api/v1/proposals/missing/submit")
    assert response.status_code == 404


# ── Delete ───────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_delete_draft(client):
    proposal = await _create_proposal(client)
    response = await client.delete(f"/api/v1/proposals/{proposal['id']}")
    assert response.status_code == 204
    response = await client.get(f"/api/v1/proposals/{proposal['id']}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_submitted_conflicts(client):
    proposal = await _create_proposal(client)
    await client.post(f"/api/v1/proposals/{proposal['id']}/submit")
    response = await client.delete(f"/api/v1/proposals/{proposal['id']}")
    assert response.status_code == 409


# ── Service Unavailable ──────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_proposals_503_when_not_initialized(make_client):
    client = await make_client(campaign_repository=None)
    response = await client.get("/api/v1/proposals")
    assert response.status_code == 503
