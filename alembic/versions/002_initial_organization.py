"""Initial organization schema: users and API keys with RLS.

Revision ID: 002_initial_organization
Revises:
Create Date: 2026-06-02

Note: This migration uses schema="org" placeholder. When run via
schema_translate_map, "org" is replaced with the actual organization schema.
For RLS and index DDL we use the actual schema name from -x args.
"""

from typing import Sequence, Union

from alembic import context, op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

# revision identifiers, used by Alembic.
revision: str = "002_initial_organization"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = ("organization",)
depends_on: Union[str, Sequence[str], None] = None


def _enable_rls(schema: str, table: str) -> None:
    op.execute(f'ALTER TABLE "{schema}".{table} ENABLE ROW LEVEL SECURITY')
    op.execute(f'ALTER TABLE "{schema}".{table} FORCE ROW LEVEL SECURITY')
    op.execute(f"""
        CREATE POLICY org_isolation ON "{schema}".{table}
        FOR ALL
        USING (organization_id::text = current_setting('app.current_org_id', true))
        WITH CHECK (organization_id::text = current_setting('app.current_org_id', true))
    """)
    op.execute(f'CREATE INDEX idx_{table}_org ON "{schema}".{table}(organization_id)')


def upgrade() -> None:
    # Get the actual schema name from -x args
    cmd_kwargs = context.get_x_argument(as_dictionary=True)
    schema = cmd_kwargs.get("schema", "org")

    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("organization_id", UUID(as_uuid=True), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(200), nullable=True),
        sa.Column("hashed_password", sa.String(255), nullable=True),
        sa.Column("role", sa.String(50), server_default=sa.text("'sales'"), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("organization_id", "email", name="uq_users_org_email"),
        schema="org",
    )
    _enable_rls(schema, "users")

    # Case-insensitive email uniqueness scoped to the organization
    op.execute(
        f'CREATE UNIQUE INDEX idx_users_email_org ON "{schema}".users(organization_id, lower(email))'
    )

    op.create_table(
        "api_keys",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("organization_id", UUID(as_uuid=True), nullable=False),
        sa.Column(
            "user_id",
            UUID(as_uuid=True),
            sa.ForeignKey("org.users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("key_hash", sa.String(255), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("organization_id", "key_hash", name="uq_api_keys_org_key_hash"),
        schema="org",
    )
    _enable_rls(schema, "api_keys")


def downgrade() -> None:
    cmd_kwargs = context.get_x_argument(as_dictionary=True)
    schema = cmd_kwargs.get("schema", "org")

    for table in ("api_keys", "users"):
        op.execute(f'DROP POLICY IF EXISTS org_isolation ON "{schema}".{table}')
        op.drop_table(table, schema="org")
