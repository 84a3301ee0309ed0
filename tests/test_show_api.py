"""Integration tests for show, episode and monetization endpoints.

Uses InMemoryShowRepository via the conftest client factory.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

MONETIZATION = {
    "pricing_model": "cpm",
    "pre_roll": {"cpm": 20, "spot_cost": 100, "slots": 1},
    "mid_roll": {"cpm": 25, "spot_cost": 300, "slots": 2},
    "post_roll": {},
}


async def _create_show(client, **overrides):
    body = {"name": "Morning Brew", "host_name": "Sam", "category": "news", **overrides}
    response = await client.post("/api/v1/shows", json=body)
    assert response.status_code == 201
    return response.json()


async def _publish_episode(client, show_id: str, downloads: int, views: int = 0, days_ago: int = 5):
    air_date = (datetime.now(timezone.utc) - timedelta(days=days_ago)).isoformat()
    response = await client.post(
        "/api/v1/episodes",
        json={
            "show_id": show_id,
            "title": f"Episode {downloads}",
            "status": "published",
            "air_date": air_date,
            "downloads": downloads,
            "youtube_views": views,
        },
    )
    assert response.status_code == 201
    return response.json()


# ── Show CRUD ────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_create_show(client, org_id):
    """POST /api/v1/shows -> 201 with show data."""
    show = await _create_show(client)
    assert show["name"] == "Morning Brew"
    assert show["organization_id"] == org_id
    assert show["is_active"] is True
    assert show["estimated_episode_value"] is None


@pytest.mark.asyncio
async def test_create_show_with_monetization_prices_default_reach(client):
    """Initial settings without downloads are priced at 5000 downloads."""
    show = await _create_show(client, monetization=MONETIZATION)
    assert show["estimated_episode_value"] == pytest.approx(350.0)


@pytest.mark.asyncio
async def test_list_shows_filters(client):
    await _create_show(client, name="Morning Brew", category="news")
    await _create_show(client, name="Night Owls", category="comedy")

    response = await client.get("/api/v1/shows", params={"category": "comedy"})
    assert [s["name"] for s in response.json()] == ["Night Owls"]

    response = await client.get("/api/v1/shows", params={"search": "brew"})
    assert [s["name"] for s in response.json()] == ["Morning Brew"]


@pytest.mark.asyncio
async def test_update_show(client):
    show = await _create_show(client)
    response = await client.patch(f"/api/v1/shows/{show['id']}", json={"host_name": "Alex"})
    assert response.status_code == 200
    assert response.json()["host_name"] == "Alex"


@pytest.mark.asyncio
async def test_delete_show_hides_it(client):
    """DELETE soft-deletes; the show is no longer readable."""
    show = await _create_show(client)
    response = await client.delete(f"/api/v1/shows/{show['id']}")
    assert response.status_code == 204

    response = await client.get(f"/api/v1/shows/{show['id']}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_get_unknown_show(client):
    response = await client.get("/api/v1/shows/missing")
    assert response.status_code == 404


# ── Monetization ─────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_update_monetization_uses_override(client):
    show = await _create_show(client)
    body = {**MONETIZATION, "avg_episode_downloads": 10000}
    response = await client.put(f"/api/v1/shows/{show['id']}/monetization", json=body)
    assert response.status_code == 200
    assert response.json()["estimated_episode_value"] == pytest.approx(700.0)

    response = await client.get(f"/api/v1/shows/{show['id']}/monetization")
    assert response.json()["avg_episode_downloads"] == 10000


@pytest.mark.asyncio
async def test_revenue_estimate_uses_measured_reach(client):
    """Without an override, published episodes' downloads + views drive the estimate."""
    show = await _create_show(client, monetization=MONETIZATION)
    await _publish_episode(client, show["id"], downloads=8000, views=2000)
    await _publish_episode(client, show["id"], downloads=8000, views=2000)

    response = await client.get(f"/api/v1/shows/{show['id']}/revenue-estimate")
    assert response.status_code == 200
    estimate = response.json()
    assert estimate["downloads"] == 10000
    assert estimate["downloads_source"] == "measured"
    assert estimate["total"] == pytest.approx(700.0)


@pytest.mark.asyncio
async def test_revenue_estimate_ignores_old_episodes(client):
    show = await _create_show(client, monetization=MONETIZATION)
    await _publish_episode(client, show["id"], downloads=50000, days_ago=400)

    response = await client.get(f"/api/v1/shows/{show['id']}/revenue-estimate")
    assert response.json()["downloads_source"] == "default"
    assert response.json()["downloads"] == 5000


@pytest.mark.asyncio
async def test_show_metrics(client):
    show = await _create_show(client)
    await _publish_episode(client, show["id"], downloads=1000, views=500)
    await _publish_episode(client, show["id"], downloads=3000, views=1500)

    response = await client.get(f"/api/v1/shows/{show['id']}/metrics")
    assert response.status_code == 200
    metrics = response.json()
    assert metrics["episode_count"] == 2
    assert metrics["avg_episode_downloads"] == pytest.approx(2000.0)
    assert metrics["combined_reach"] == 3000


@pytest.mark.asyncio
async def test_revenue_sharing_and_projection(client):
    show = await _create_show(
        client, monetization={**MONETIZATION, "sellout_projection": 80}
    )
    response = await client.put(
        f"/api/v1/shows/{show['id']}/revenue-sharing",
        json={"type": "percentage", "percentage": 25},
    )
    assert response.status_code == 200
    projection = response.json()
    assert projection["estimated_revenue"] == pytest.approx(280.0)
    assert projection["talent_share"] == pytest.approx(70.0)
    assert projection["organization_profit"] == pytest.approx(210.0)

    response = await client.get(f"/api/v1/shows/{show['id']}/revenue-projection")
    assert response.json() == projection


@pytest.mark.asyncio
async def test_revenue_sharing_unknown_show(client):
    response = await client.put(
        "/api/v1/shows/missing/revenue-sharing", json={"type": "fixed", "fixed_amount": 100}
    )
    assert response.status_code == 404


# ── Episodes ─────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_episode_crud(client):
    show = await _create_show(client)
    episode = await _publish_episode(client, show["id"], downloads=100)

    response = await client.patch(f"/api/v1/episodes/{episode['id']}", json={"downloads": 250})
    assert response.status_code == 200
    assert response.json()["downloads"] == 250

    response = await client.get("/api/v1/episodes", params={"show_id": show["id"]})
    assert len(response.json()) == 1

    response = await client.delete(f"/api/v1/episodes/{episode['id']}")
    assert response.status_code == 204
    response = await client.get(f"/api/v1/episodes/{episode['id']}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_episode_for_unknown_show(client):
    response = await client.post(
        "/api/v1/episodes", json={"show_id": "missing", "title": "Pilot"}
    )
    assert response.status_code == 404


# ── Service Unavailable ──────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_shows_503_when_not_initialized(make_client):
    """app.state.show_repository = None -> 503."""
    client = await make_client(show_repository=None)
    response = await client.get("/api/v1/shows")
    assert response.status_code == 503
    assert "not initialized" in response.json()["detail"]

    response = await client.get("/api/v1/episodes")
    assert response.status_code == 503
