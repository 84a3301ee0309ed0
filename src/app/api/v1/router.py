"""V1 API router -- aggregates all v1 endpoint routers."""

from __future__ import annotations

from fastapi import APIRouter

from src.app.api.v1 import (
    auth,
    campaigns,
    dashboard,
    episodes,
    financials,
    health,
    notifications,
    organizations,
    proposals,
    reports,
    shows,
    talent_approvals,
    users,
)

router = APIRouter()

router.include_router(health.router)
router.include_router(organizations.router)
router.include_router(auth.router)
router.include_router(users.router)
router.include_router(shows.router)
router.include_router(episodes.router)
router.include_router(campaigns.router)
router.include_router(proposals.router)
router.include_router(talent_approvals.router)
router.include_router(notifications.router)
router.include_router(financials.router)
router.include_router(reports.router)
router.include_router(dashboard.router)
