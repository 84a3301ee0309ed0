"""Async SQLAlchemy engine with multi-organization schema isolation.

Provides:
- SharedBase: Declarative base for shared schema tables (e.g., organizations)
- OrgBase: Declarative base for per-organization schema tables (placeholder schema="org")
- get_org_session(): Session with schema_translate_map for organization isolation
- Pool checkout event that resets session variables (RESET ALL) to prevent stale leaks
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import MetaData, event, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from src.app.config import get_settings
from src.app.core.organization import get_current_organization

# Placeholder schema remapped per request
ORG_SCHEMA_PLACEHOLDER = "org"

# ── Module-level engine (lazy init) ────────────────────────────────────────

_engine: AsyncEngine | None = None


def get_engine() -> AsyncEngine:
    """Get or create the async engine singleton."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(
            settings.DATABASE_URL,
            pool_size=20,
            max_overflow=10,
            echo=False,
        )

        # Reset session variables on every connection checkout so a previous
        # request's organization id never leaks into the next one
        @event.listens_for(_engine.sync_engine, "checkout")
        def reset_org_context(dbapi_conn: Any, connection_record: Any, connection_proxy: Any) -> None:
            cursor = dbapi_conn.cursor()
            cursor.execute("RESET ALL")
            cursor.close()

    return _engine


# ── Declarative Bases ───────────────────────────────────────────────────────

shared_metadata = MetaData(schema="shared")
org_metadata = MetaData(schema=ORG_SCHEMA_PLACEHOLDER)


class SharedBase(DeclarativeBase):
    """Base class for shared schema models (e.g., organizations table)."""

    metadata = shared_metadata


class OrgBase(DeclarativeBase):
    """Base class for per-organization schema models.

    Uses placeholder schema="org" which is remapped at runtime via
    schema_translate_map to the actual organization schema (e.g., "org_acme_audio").
    """

    metadata = org_metadata


# ── Session Factories ───────────────────────────────────────────────────────


async def get_org_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an organization-scoped AsyncSession with schema_translate_map and RLS context.

    1. Gets the current organization from contextvars
    2. Creates a connection with schema_translate_map={"org": org.schema_name}
    3. Sets RLS context via SET app.current_org_id
    4. Yields the session
    """
    org = get_current_organization()
    engine = get_engine()

    async with engine.connect() as conn:
        conn = await conn.execution_options(
            schema_translate_map={ORG_SCHEMA_PLACEHOLDER: org.schema_name}
        )
        await conn.execute(text(f"SET app.current_org_id = '{org.organization_id}'"))

        async with AsyncSession(bind=conn, expire_on_commit=False) as session:
            yield session


# ── Database Initialization ─────────────────────────────────────────────────


async def init_db() -> None:
    """Create the shared schema and shared tables if they don't exist."""
    # Registers the Organization model on SharedBase.metadata
    import src.app.models.shared  # noqa: F401

    engine = get_engine()
    async with engine.begin() as conn:
        await conn.execute(text("CREATE SCHEMA IF NOT EXISTS shared"))
        await conn.run_sync(SharedBase.metadata.create_all)


async def close_db() -> None:
    """Dispose of the engine and close all connections."""
    global _engine
    if _engine:
        await _engine.dispose()
        _engine = None
