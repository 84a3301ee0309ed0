"""Organization provisioning service.

Handles creating new organizations with isolated PostgreSQL schemas,
RLS policies, and Redis namespaces. This is the core of the onboarding flow.
"""

from __future__ import annotations

import logging
import re
import uuid

from fastapi import HTTPException
from sqlalchemy import text

# Importing the model modules registers every business table on OrgBase.metadata
import src.app.campaigns.models  # noqa: F401
import src.app.financials.models  # noqa: F401
import src.app.models.organization  # noqa: F401
import src.app.notifications.models  # noqa: F401
import src.app.shows.models  # noqa: F401
import src.app.talent.models  # noqa: F401
from src.app.core.database import ORG_SCHEMA_PLACEHOLDER, OrgBase, get_engine
from src.app.core.organization import schema_name_for_slug
from src.app.core.redis import get_redis_pool, org_key

logger = logging.getLogger(__name__)

# Slug validation: lowercase alphanumeric + hyphens, 3-50 chars
SLUG_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]{1,48}[a-z0-9]$")


def org_table_names() -> list[str]:
    """Business tables created in every organization schema, in dependency order."""
    return [table.name for table in OrgBase.metadata.sorted_tables]


def rls_statements(schema_name: str, table: str) -> list[str]:
    """DDL enabling forced row level security on one organization table."""
    qualified = f'"{schema_name}".{table}'
    return [
        f"ALTER TABLE {qualified} ENABLE ROW LEVEL SECURITY",
        f"ALTER TABLE {qualified} FORCE ROW LEVEL SECURITY",
        f"""
            CREATE POLICY org_isolation ON {qualified}
            FOR ALL
            USING (organization_id::text = current_setting('app.current_org_id', true))
            WITH CHECK (organization_id::text = current_setting('app.current_org_id', true))
        """,
        f"CREATE INDEX IF NOT EXISTS idx_{table}_org ON {qualified}(organization_id)",
    ]


async def provision_organization(slug: str, name: str) -> dict:
    """Provision a new organization with isolated schema, RLS, and Redis namespace.

    Steps:
    1. Validate slug format
    2. Compute schema_name
    3. Check for duplicate slug
    4. Create PostgreSQL schema
    5. Create business tables and enable RLS on each
    6. Insert organization record in shared.organizations
    7. Initialize Redis namespace
    8. Return organization data

    Raises:
        HTTPException(400): Invalid slug format
        HTTPException(409): Organization with slug already exists
    """
    if not SLUG_PATTERN.match(slug):
        raise HTTPException(
            status_code=400,
            detail="Slug must be 3-50 chars, lowercase alphanumeric and hyphens only, "
                   "must start and end with alphanumeric character.",
        )

    schema_name = schema_name_for_slug(slug)

    engine = get_engine()
    async with engine.begin() as conn:
        result = await conn.execute(
            text("SELECT id FROM shared.organizations WHERE slug = :slug"),
            {"slug": slug},
        )
        if result.first():
            raise HTTPException(
                status_code=409, detail=f"Organization with slug '{slug}' already exists"
            )

        await conn.execute(text(f'CREATE SCHEMA IF NOT EXISTS "{schema_name}"'))

        schema_conn = await conn.execution_options(
            schema_translate_map={ORG_SCHEMA_PLACEHOLDER: schema_name}
        )
        await schema_conn.run_sync(OrgBase.metadata.create_all)

        for table in org_table_names():
            for statement in rls_statements(schema_name, table):
                await conn.execute(text(statement))

        # Emails are unique per organization regardless of case
        await conn.execute(text(
            f'CREATE UNIQUE INDEX IF NOT EXISTS idx_users_email_org_ci '
            f'ON "{schema_name}".users(organization_id, lower(email))'
        ))

        organization_id = uuid.uuid4()
        await conn.execute(
            text("""
                INSERT INTO shared.organizations (id, slug, name, schema_name, is_active, created_at)
                VALUES (:id, :slug, :name, :schema_name, true, now())
            """),
            {"id": organization_id, "slug": slug, "name": name, "schema_name": schema_name},
        )

    try:
        redis = get_redis_pool()
        await redis.set(org_key(str(organization_id), "initialized"), "true")
    except Exception:
        logger.warning("Failed to initialize Redis namespace for organization %s", slug)

    logger.info("Provisioned organization %s (schema %s)", slug, schema_name)
    return {
        "organization_id": str(organization_id),
        "slug": slug,
        "name": name,
        "schema_name": schema_name,
    }


async def list_organizations() -> list[dict]:
    """List all active organizations."""
    engine = get_engine()
    async with engine.connect() as conn:
        result = await conn.execute(
            text(
                "SELECT id, slug, name, schema_name, is_active, created_at "
                "FROM shared.organizations WHERE is_active = true ORDER BY created_at"
            )
        )
        rows = result.fetchall()
        return [
            {
                "id": str(row.id),
                "slug": row.slug,
                "name": row.name,
                "schema_name": row.schema_name,
                "is_active": row.is_active,
                "created_at": row.created_at,
            }
            for row in rows
        ]
