from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "0002_listings_and_leads"
down_revision = "0001_accounts_and_auth"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "listings",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("seller_id", sa.String(), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("assigned_agent_id", sa.String(), sa.ForeignKey("accounts.id"), nullable=True),
        sa.Column("tier", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("views", sa.Integer(), nullable=False, server_default="0"),

        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("industry", sa.String(length=120), nullable=False),
        sa.Column("region", sa.String(length=120), nullable=False),
        sa.Column("price", sa.Numeric(14, 2), nullable=False),
        sa.Column("turnover", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("net_profit", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("description", sa.Text(), nullable=True),

        sa.Column("legal_business_name", sa.String(length=200), nullable=True),
        sa.Column("owner_name", sa.String(length=200), nullable=True),
        sa.Column("full_address", sa.Text(), nullable=True),

        sa.Column("sale_pack_ready", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("financial_analysis_ready", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("legal_attestation_ready", sa.Boolean(), nullable=False, server_default=sa.text("false")),

        sa.Column("payment_reference", sa.String(length=120), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),

        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("created_by", sa.String(), nullable=True),
        sa.Column("updated_by", sa.String(), nullable=True),

        sa.CheckConstraint("tier IN ('basic', 'premium')", name="ck_listings_tier"),
        sa.CheckConstraint("status IN ('pending', 'active', 'rejected')", name="ck_listings_status"),
        sa.CheckConstraint("status <> 'active' OR assigned_agent_id IS NOT NULL", name="ck_listings_active_has_agent"),
        sa.CheckConstraint("status <> 'pending' OR assigned_agent_id IS NULL", name="ck_listings_pending_unassigned"),
    )
    op.create_index("ix_listings_seller_id", "listings", ["seller_id"])
    op.create_index("ix_listings_assigned_agent_id", "listings", ["assigned_agent_id"])
    op.create_index("ix_listings_industry", "listings", ["industry"])
    op.create_index("ix_listings_region", "listings", ["region"])
    op.create_index("ix_listings_status_created", "listings", ["status", "created_at"])

    op.create_table(
        "leads",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("listing_id", sa.String(), sa.ForeignKey("listings.id"), nullable=False),
        sa.Column("buyer_id", sa.String(), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="new"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("created_by", sa.String(), nullable=True),
        sa.Column("updated_by", sa.String(), nullable=True),
        sa.UniqueConstraint("listing_id", "buyer_id", name="uq_lead_listing_buyer"),
        sa.CheckConstraint("status IN ('new', 'contacted', 'negotiating', 'closed')", name="ck_leads_status"),
    )
    op.create_index("ix_leads_listing_id", "leads", ["listing_id"])
    op.create_index("ix_leads_buyer_id", "leads", ["buyer_id"])


def downgrade() -> None:
    op.drop_index("ix_leads_buyer_id", table_name="leads")
    op.drop_index("ix_leads_listing_id", table_name="leads")
    op.drop_table("leads")
    op.drop_index("ix_listings_status_created", table_name="listings")
    op.drop_index("ix_listings_region", table_name="listings")
    op.drop_index("ix_listings_industry", table_name="listings")
    op.drop_index("ix_listings_assigned_agent_id", table_name="listings")
    op.drop_index("ix_listings_seller_id", table_name="listings")
    op.drop_table("listings")
