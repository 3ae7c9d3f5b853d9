from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import DateTime

from biztech.core.ids import gen_id
from biztech.models.base import Base, AuditMixin, utcnow

ROLES = ("admin", "agent", "seller", "buyer")
ACCOUNT_STATUSES = ("pending", "active", "rejected")


class Account(AuditMixin, Base):
    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint("role IN ('admin', 'agent', 'seller', 'buyer')", name="ck_accounts_role"),
        CheckConstraint("account_status IN ('pending', 'active', 'rejected')", name="ck_accounts_status"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("acc"))

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True, index=True)
    phone: Mapped[str | None] = mapped_column(String(40), nullable=True)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)

    # "admin" | "agent" | "seller" | "buyer"
    role: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    # "pending" | "active" | "rejected"
    account_status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending", index=True)
    email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # buyer only, free-text band e.g. "100k-1M"
    financial_means: Mapped[str | None] = mapped_column(String(60), nullable=True)
    # seller only
    agreed_commission: Mapped[bool | None] = mapped_column(Boolean, nullable=True)

    # Embedded in bearer tokens; bumping it revokes every token issued before.
    token_version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class EmailVerification(Base):
    __tablename__ = "email_verifications"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("evf"))
    account_id: Mapped[str] = mapped_column(String, ForeignKey("accounts.id"), nullable=False, index=True)

    code_hash: Mapped[str] = mapped_column(String(80), nullable=False)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class PasswordResetToken(Base):
    __tablename__ = "password_reset_tokens"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("prt"))
    account_id: Mapped[str] = mapped_column(String, ForeignKey("accounts.id"), nullable=False, index=True)

    token_hash: Mapped[str] = mapped_column(String(80), nullable=False, unique=True)

    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
