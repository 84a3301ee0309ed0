"""FastAPI application factory.

Creates the app with organization middleware, logging middleware, metrics
middleware, CORS, Sentry, lifespan events for database and domain module
initialization, and the v1 API router.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import Response

from src.app.config import get_settings
from src.app.core.database import close_db, init_db
from src.app.core.monitoring import MetricsMiddleware, get_metrics_response, init_sentry
from src.app.core.redis import close_redis, get_redis_pool
from src.app.api.middleware.organization import OrganizationAuthMiddleware
from src.app.api.middleware.logging import LoggingMiddleware, configure_structlog
from src.app.api.v1.router import router as v1_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: init DB, Sentry and domain modules; close on shutdown."""
    import structlog

    log = structlog.get_logger(__name__)
    settings = get_settings()
    configure_structlog()
    await init_db()

    # Initialize Sentry if DSN is configured
    if settings.SENTRY_DSN:
        init_sentry(dsn=settings.SENTRY_DSN, environment=settings.ENVIRONMENT.value)

    # ── Domain Module Initialization ─────────────────────────────────────
    # Each module is wrapped in its own try/except so a single failure does
    # not prevent the application from starting. Endpoints of a module whose
    # state is None return 503.

    from src.app.core.database import get_org_session

    # Show catalogue
    try:
        from src.app.shows.repository import ShowRepository

        app.state.show_repository = ShowRepository(session_factory=get_org_session)
        log.info("shows.initialized")
    except Exception:
        log.warning("shows.init_failed", exc_info=True)
        app.state.show_repository = None

    # Campaigns and proposals
    try:
        from src.app.campaigns.repository import CampaignRepository

        app.state.campaign_repository = CampaignRepository(session_factory=get_org_session)
        log.info("campaigns.initialized")
    except Exception:
        log.warning("campaigns.init_failed", exc_info=True)
        app.state.campaign_repository = None

    # Notifications
    try:
        from src.app.notifications.repository import NotificationRepository
        from src.app.notifications.service import NotificationService

        notification_repository = NotificationRepository(session_factory=get_org_session)
        app.state.notification_repository = notification_repository
        app.state.notification_service = NotificationService(notification_repository)
        log.info("notifications.initialized")
    except Exception:
        log.warning("notifications.init_failed", exc_info=True)
        app.state.notification_repository = None
        app.state.notification_service = None

    # Talent approvals (depends on campaigns, shows, notifications)
    try:
        from src.app.talent.repository import TalentApprovalRepository
        from src.app.talent.workflow import TalentApprovalWorkflow

        if app.state.notification_service is None:
            raise RuntimeError("notification service unavailable")

        talent_repository = TalentApprovalRepository(session_factory=get_org_session)
        app.state.talent_repository = talent_repository
        app.state.talent_workflow = TalentApprovalWorkflow(
            repository=talent_repository,
            notifier=app.state.notification_service,
            campaign_repository=app.state.campaign_repository,
            show_repository=app.state.show_repository,
            expiry_days=settings.TALENT_APPROVAL_EXPIRY_DAYS,
            commit_threshold=settings.CAMPAIGN_COMMIT_THRESHOLD,
        )
        log.info(
            "talent.initialized",
            approval_threshold=settings.TALENT_APPROVAL_THRESHOLD,
            commit_threshold=settings.CAMPAIGN_COMMIT_THRESHOLD,
        )
    except Exception:
        log.warning("talent.init_failed", exc_info=True)
        app.state.talent_repository = None
        app.state.talent_workflow = None

    # Financials and reports
    try:
        from src.app.financials.reports import FinancialReportService
        from src.app.financials.repository import FinancialRepository

        financial_repository = FinancialRepository(
            session_factory=get_org_session,
            invoice_prefix=settings.INVOICE_NUMBER_PREFIX,
        )
        app.state.financial_repository = financial_repository
        app.state.financial_reports = FinancialReportService(
            financial_repository,
            campaign_repository=app.state.campaign_repository,
        )
        log.info("financials.initialized")
    except Exception:
        log.warning("financials.init_failed", exc_info=True)
        app.state.financial_repository = None
        app.state.financial_reports = None

    # Dashboard (missing sources are reported as degraded, not fatal)
    try:
        from src.app.dashboard.service import DashboardService

        app.state.dashboard_service = DashboardService(
            show_repository=app.state.show_repository,
            campaign_repository=app.state.campaign_repository,
            talent_repository=app.state.talent_repository,
            financial_repository=app.state.financial_repository,
            redis=get_redis_pool(),
            cache_ttl=settings.DASHBOARD_CACHE_TTL,
        )
        log.info("dashboard.initialized", cache_ttl=settings.DASHBOARD_CACHE_TTL)
    except Exception:
        log.warning("dashboard.init_failed", exc_info=True)
        app.state.dashboard_service = None

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Podcast Ad-Ops API",
        version="0.1.0",
        description="Show monetization, campaigns, talent approvals and financial reporting for podcast networks",
        lifespan=lifespan,
    )

    # Middleware is added in reverse order (last added = outermost)

    # Organization middleware (inner -- resolves organization context from JWT/header)
    redis_client = get_redis_pool()
    app.add_middleware(OrganizationAuthMiddleware, redis_client=redis_client)

    # CORS middleware
    if settings.CORS_ALLOWED_ORIGINS == "*":
        origins = ["*"]
    else:
        origins = [o.strip() for o in settings.CORS_ALLOWED_ORIGINS.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Logging middleware (logs every request with timing)
    app.add_middleware(LoggingMiddleware)

    # Metrics middleware (outermost -- records Prometheus metrics for all requests)
    app.add_middleware(MetricsMiddleware)

    # Include v1 API router (health, organizations, auth, domain routers)
    app.include_router(v1_router)

    # Prometheus metrics endpoint (infrastructure route, outside v1 router)
    @app.get("/metrics", include_in_schema=False)
    async def metrics(request: Request) -> Response:
        """Prometheus metrics endpoint."""
        return get_metrics_response()

    return app


# Module-level app for uvicorn
app = create_app()
