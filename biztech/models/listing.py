from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from biztech.core.ids import gen_id
from biztech.models.base import Base, AuditMixin

TIERS = ("basic", "premium")
DELIVERABLE_FIELDS = ("sale_pack_ready", "financial_analysis_ready", "legal_attestation_ready")


class Listing(AuditMixin, Base):
    __tablename__ = "listings"
    __table_args__ = (
        CheckConstraint("tier IN ('basic', 'premium')", name="ck_listings_tier"),
        CheckConstraint("status IN ('pending', 'active', 'rejected')", name="ck_listings_status"),
        # approval and agent assignment are one fact: never active without an agent, never pending with one
        CheckConstraint("status <> 'active' OR assigned_agent_id IS NOT NULL", name="ck_listings_active_has_agent"),
        CheckConstraint("status <> 'pending' OR assigned_agent_id IS NULL", name="ck_listings_pending_unassigned"),
        Index("ix_listings_status_created", "status", "created_at"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("lst"))

    seller_id: Mapped[str] = mapped_column(String, ForeignKey("accounts.id"), nullable=False, index=True)
    assigned_agent_id: Mapped[str | None] = mapped_column(String, ForeignKey("accounts.id"), nullable=True, index=True)

    # Frozen at creation from price; see services.tiers
    tier: Mapped[str] = mapped_column(String(20), nullable=False)
    # "pending" | "active" | "rejected"
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # public data
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    industry: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    region: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    price: Mapped[float] = mapped_column(Numeric(14, 2, asdecimal=False), nullable=False)
    turnover: Mapped[float] = mapped_column(Numeric(14, 2, asdecimal=False), nullable=False, default=0)
    net_profit: Mapped[float] = mapped_column(Numeric(14, 2, asdecimal=False), nullable=False, default=0)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # private data: owner, assigned agent and admin only
    legal_business_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    owner_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    full_address: Mapped[str | None] = mapped_column(Text, nullable=True)

    # premium deliverables
    sale_pack_ready: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    financial_analysis_ready: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    legal_attestation_ready: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # set once the premium fee was captured by the payment provider
    payment_reference: Mapped[str | None] = mapped_column(String(120), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
