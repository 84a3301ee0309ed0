"""Per-organization migration helpers.

Provides functions to run Alembic migrations across all organization
schemas or for a specific organization schema.
"""

from __future__ import annotations

from argparse import Namespace

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, text

from src.app.config import get_settings

ORGANIZATION_HEAD = "organization@head"


def _get_alembic_config(schema_name: str) -> Config:
    """Create an Alembic Config for alembic.ini with `-x schema=<schema_name>`."""
    return Config("alembic.ini", cmd_opts=Namespace(x=[f"schema={schema_name}"]))


def migrate_organization(
    schema_name: str, direction: str = "upgrade", revision: str = ORGANIZATION_HEAD
) -> None:
    """Run migration for a single organization schema.

    Args:
        schema_name: The organization schema name (e.g., "org_acme_audio")
        direction: "upgrade" or "downgrade"
        revision: Target revision (default: head of the organization branch)
    """
    config = _get_alembic_config(schema_name)

    if direction == "upgrade":
        command.upgrade(config, revision)
    elif direction == "downgrade":
        command.downgrade(config, revision)
    else:
        raise ValueError(f"Invalid direction: {direction}")


def migrate_all_organizations(
    direction: str = "upgrade", revision: str = ORGANIZATION_HEAD
) -> list[str]:
    """Run migrations for all active organization schemas.

    Queries shared.organizations, iterates over all active organization
    schemas, and runs the Alembic migration for each.

    Returns:
        List of schema names that were migrated.
    """
    settings = get_settings()
    sync_url = settings.DATABASE_URL.replace("+asyncpg", "")
    engine = create_engine(sync_url)

    migrated = []
    with engine.connect() as conn:
        result = conn.execute(
            text("SELECT schema_name FROM shared.organizations WHERE is_active = true")
        )
        schemas = [row[0] for row in result]

    for schema_name in schemas:
        migrate_organization(schema_name, direction, revision)
        migrated.append(schema_name)

    engine.dispose()
    return migrated
