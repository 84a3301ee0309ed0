"""Add ad-ops tables: shows, episodes, campaigns, proposals, talent approvals,
notifications, invoices, payments and expenses.

Revision ID: 003_adops_tables
Revises: 002_initial_organization
Create Date: 2026-06-09

All tables live in the organization schema with RLS policies for
organization isolation and indexes for common query patterns. No foreign
key constraints (application-level referential integrity via repository).
"""

from typing import Sequence, Union

from alembic import context, op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

# revision identifiers, used by Alembic.
revision: str = "003_adops_tables"
down_revision: Union[str, None] = "002_initial_organization"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TABLES = (
    "shows",
    "episodes",
    "campaigns",
    "proposals",
    "talent_approvals",
    "notifications",
    "invoices",
    "payments",
    "expenses",
)


def _id() -> sa.Column:
    return sa.Column(
        "id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")
    )


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


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

    # ── Shows and episodes ──────────────────────────────────────────────

    op.create_table(
        "shows",
        _id(),
        sa.Column("organization_id", UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(300), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("host_name", sa.String(200), nullable=True),
        sa.Column("talent_user_id", UUID(as_uuid=True), nullable=True),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("pricing_model", sa.String(20), server_default=sa.text("'cpm'"), nullable=False),
        sa.Column("pre_roll_cpm", sa.Float(), nullable=True),
        sa.Column("pre_roll_spot_cost", sa.Float(), nullable=True),
        sa.Column("pre_roll_slots", sa.Integer(), nullable=True),
        sa.Column("mid_roll_cpm", sa.Float(), nullable=True),
        sa.Column("mid_roll_spot_cost", sa.Float(), nullable=True),
        sa.Column("mid_roll_slots", sa.Integer(), nullable=True),
        sa.Column("post_roll_cpm", sa.Float(), nullable=True),
        sa.Column("post_roll_spot_cost", sa.Float(), nullable=True),
        sa.Column("post_roll_slots", sa.Integer(), nullable=True),
        sa.Column("avg_episode_downloads", sa.Integer(), nullable=True),
        sa.Column("sellout_projection", sa.Float(), nullable=True),
        sa.Column("estimated_episode_value", sa.Float(), nullable=True),
        sa.Column("revenue_sharing_type", sa.String(20), nullable=True),
        sa.Column("revenue_sharing_percentage", sa.Float(), nullable=True),
        sa.Column("revenue_sharing_fixed_amount", sa.Float(), nullable=True),
        sa.Column("revenue_sharing_notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("organization_id", "name", name="uq_show_org_name"),
        schema="org",
    )

    op.create_table(
        "episodes",
        _id(),
        sa.Column("organization_id", UUID(as_uuid=True), nullable=False),
        sa.Column("show_id", UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("episode_number", sa.Integer(), nullable=True),
        sa.Column("air_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(20), server_default=sa.text("'draft'"), nullable=False),
        sa.Column("duration_seconds", sa.Integer(), nullable=True),
        sa.Column("downloads", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("youtube_views", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        *_timestamps(),
        schema="org",
    )

    # ── Campaigns and proposals ─────────────────────────────────────────

    op.create_table(
        "campaigns",
        _id(),
        sa.Column("organization_id", UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(300), nullable=False),
        sa.Column("advertiser_name", sa.String(300), nullable=False),
        sa.Column("agency_name", sa.String(300), nullable=True),
        sa.Column("status", sa.String(20), server_default=sa.text("'draft'"), nullable=False),
        sa.Column("probability", sa.Integer(), server_default=sa.text("10"), nullable=False),
        sa.Column("budget", sa.Float(), server_default=sa.text("0"), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", UUID(as_uuid=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        *_timestamps(),
        schema="org",
    )

    op.create_table(
        "proposals",
        _id(),
        sa.Column("organization_id", UUID(as_uuid=True), nullable=False),
        sa.Column("campaign_id", UUID(as_uuid=True), nullable=True),
        sa.Column("name", sa.String(300), nullable=False),
        sa.Column("approval_status", sa.String(30), server_default=sa.text("'draft'"), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("items", sa.JSON(), server_default=sa.text("'[]'::json"), nullable=False),
        sa.Column("created_by", UUID(as_uuid=True), nullable=True),
        sa.Column("submitted_by", UUID(as_uuid=True), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_by", UUID(as_uuid=True), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        *_timestamps(),
        schema="org",
    )

    # ── Talent approvals and notifications ──────────────────────────────

    op.create_table(
        "talent_approvals",
        _id(),
        sa.Column("organization_id", UUID(as_uuid=True), nullable=False),
        sa.Column("campaign_id", UUID(as_uuid=True), nullable=False),
        sa.Column("show_id", UUID(as_uuid=True), nullable=False),
        sa.Column("talent_id", UUID(as_uuid=True), nullable=False),
        sa.Column("spot_type", sa.String(30), server_default=sa.text("'host_read'"), nullable=False),
        sa.Column("status", sa.String(20), server_default=sa.text("'pending'"), nullable=False),
        sa.Column("requested_by", UUID(as_uuid=True), nullable=True),
        sa.Column("requested_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("responded_by", UUID(as_uuid=True), nullable=True),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("comments", sa.Text(), nullable=True),
        sa.Column("denial_reason", sa.Text(), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("summary_data", sa.JSON(), server_default=sa.text("'{}'::json"), nullable=False),
        *_timestamps(),
        schema="org",
    )

    op.create_table(
        "notifications",
        _id(),
        sa.Column("organization_id", UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("type", sa.String(50), server_default=sa.text("'info'"), nullable=False),
        sa.Column("category", sa.String(50), nullable=True),
        sa.Column("action_url", sa.String(500), nullable=True),
        sa.Column("metadata_json", sa.JSON(), server_default=sa.text("'{}'::json"), nullable=False),
        sa.Column("is_read", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        schema="org",
    )

    # ── Financials ──────────────────────────────────────────────────────

    op.create_table(
        "invoices",
        _id(),
        sa.Column("organization_id", UUID(as_uuid=True), nullable=False),
        sa.Column("number", sa.String(30), nullable=False),
        sa.Column("campaign_id", UUID(as_uuid=True), nullable=True),
        sa.Column("client_name", sa.String(300), nullable=False),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("paid_amount", sa.Float(), server_default=sa.text("0"), nullable=False),
        sa.Column("issue_date", sa.Date(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("paid_date", sa.Date(), nullable=True),
        sa.Column("status", sa.String(20), server_default=sa.text("'draft'"), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("organization_id", "number", name="uq_invoice_org_number"),
        schema="org",
    )

    op.create_table(
        "payments",
        _id(),
        sa.Column("organization_id", UUID(as_uuid=True), nullable=False),
        sa.Column("invoice_id", UUID(as_uuid=True), nullable=True),
        sa.Column("client_name", sa.String(300), nullable=False),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("method", sa.String(20), server_default=sa.text("'ach'"), nullable=False),
        sa.Column("payment_date", sa.Date(), nullable=False),
        sa.Column("reference", sa.String(200), nullable=True),
        sa.Column("status", sa.String(20), server_default=sa.text("'completed'"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        schema="org",
    )

    op.create_table(
        "expenses",
        _id(),
        sa.Column("organization_id", UUID(as_uuid=True), nullable=False),
        sa.Column("description", sa.String(500), nullable=False),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("category", sa.String(30), server_default=sa.text("'other'"), nullable=False),
        sa.Column("vendor", sa.String(300), nullable=True),
        sa.Column("expense_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(20), server_default=sa.text("'pending'"), nullable=False),
        sa.Column("show_id", UUID(as_uuid=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        *_timestamps(),
        schema="org",
    )

    for table in TABLES:
        _enable_rls(schema, table)

    # ── Query indexes ───────────────────────────────────────────────────

    op.execute(f'CREATE INDEX idx_episodes_show_air ON "{schema}".episodes(organization_id, show_id, air_date)')
    op.execute(f'CREATE INDEX idx_campaigns_status ON "{schema}".campaigns(organization_id, status)')
    op.execute(f'CREATE INDEX idx_proposals_campaign ON "{schema}".proposals(organization_id, campaign_id)')
    op.execute(
        f'CREATE INDEX idx_talent_approvals_lookup ON "{schema}".talent_approvals'
        "(organization_id, campaign_id, show_id, talent_id)"
    )
    op.execute(
        f'CREATE INDEX idx_notifications_user ON "{schema}".notifications'
        "(organization_id, user_id, is_read, created_at DESC)"
    )
    op.execute(f'CREATE INDEX idx_invoices_status_due ON "{schema}".invoices(organization_id, status, due_date)')
    op.execute(f'CREATE INDEX idx_payments_date ON "{schema}".payments(organization_id, payment_date)')
    op.execute(f'CREATE INDEX idx_expenses_date ON "{schema}".expenses(organization_id, expense_date)')


def downgrade() -> None:
    cmd_kwargs = context.get_x_argument(as_dictionary=True)
    schema = cmd_kwargs.get("schema", "org")

    for table in reversed(TABLES):
        op.execute(f'DROP POLICY IF EXISTS org_isolation ON "{schema}".{table}')
        op.drop_table(table, schema="org")
