#!/usr/bin/env python3
"""CLI script to provision a new organization.

Usage:
    python scripts/provision_organization.py --slug acme-audio --name "Acme Audio"
    python scripts/provision_organization.py --slug acme-audio --name "Acme Audio" --admin-email admin@acme.fm --admin-password changeme

Connects directly to the database using DATABASE_URL from environment or .env file.
Provisions the schema, creates tables with RLS, registers the organization in
shared.organizations. Optionally creates an initial master user.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import uuid

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env"))


async def provision(slug: str, name: str, admin_email: str | None, admin_password: str | None) -> None:
    """Provision an organization by calling the provisioning service directly."""
    from sqlalchemy import text

    from src.app.core.database import get_engine, init_db
    from src.app.core.security import hash_password
    from src.app.services.organization_provisioning import provision_organization

    # Initialize shared schema if needed
    await init_db()

    print(f"Provisioning organization: slug={slug}, name={name}")
    result = await provision_organization(slug=slug, name=name)
    print("Organization provisioned successfully:")
    print(f"  ID:     {result['organization_id']}")
    print(f"  Slug:   {result['slug']}")
    print(f"  Name:   {result['name']}")
    print(f"  Schema: {result['schema_name']}")

    engine = get_engine()

    # Optionally create the first master user
    if admin_email and admin_password:
        schema_name = result["schema_name"]
        organization_id = result["organization_id"]

        async with engine.begin() as conn:
            # RLS is forced on users; scope this transaction to the new organization
            await conn.execute(
                text("SELECT set_config('app.current_org_id', :org_id, true)"),
                {"org_id": organization_id},
            )
            await conn.execute(
                text(f"""
                    INSERT INTO "{schema_name}".users
                        (id, organization_id, email, name, role, is_active, hashed_password, created_at)
                    VALUES (:id, :organization_id, :email, :name, 'master', true, :hashed_password, now())
                """),
                {
                    "id": uuid.uuid4(),
                    "organization_id": uuid.UUID(organization_id),
                    "email": admin_email.lower(),
                    "name": f"Admin ({name})",
                    "hashed_password": hash_password(admin_password),
                },
            )
        print(f"  Master user created: {admin_email}")

    await engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Provision a new organization")
    parser.add_argument("--slug", required=True, help="Organization slug (e.g., acme-audio)")
    parser.add_argument("--name", required=True, help="Organization display name (e.g., 'Acme Audio')")
    parser.add_argument("--admin-email", default=None, help="Initial master user email")
    parser.add_argument("--admin-password", default=None, help="Initial master user password")
    args = parser.parse_args()

    if (args.admin_email and not args.admin_password) or (args.admin_password and not args.admin_email):
        parser.error("--admin-email and --admin-password must be provided together")

    asyncio.run(provision(args.slug, args.name, args.admin_email, args.admin_password))


if __name__ == "__main__":
    main()
