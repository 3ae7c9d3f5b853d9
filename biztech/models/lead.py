from sqlalchemy import CheckConstraint, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from biztech.core.ids import gen_id
from biztech.models.base import Base, AuditMixin

LEAD_STATUSES = ("new", "contacted", "negotiating", "closed")


class Lead(AuditMixin, Base):
    __tablename__ = "leads"
    __table_args__ = (
        # one enquiry per buyer and listing, enforced by storage so concurrent submissions cannot both land
        UniqueConstraint("listing_id", "buyer_id", name="uq_lead_listing_buyer"),
        CheckConstraint("status IN ('new', 'contacted', 'negotiating', 'closed')", name="ck_leads_status"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("led"))

    listing_id: Mapped[str] = mapped_column(String, ForeignKey("listings.id"), nullable=False, index=True)
    buyer_id: Mapped[str] = mapped_column(String, ForeignKey("accounts.id"), nullable=False, index=True)

    message: Mapped[str] = mapped_column(Text, nullable=False)
    # "new" | "contacted" | "negotiating" | "closed"
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="new")
