from datetime import datetime

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import DateTime

from biztech.core.ids import gen_id
from biztech.models.base import Base, utcnow
from biztech.models.types import JsonDict


class IdempotencyKey(Base):
    __tablename__ = "idempotency_keys"
    __table_args__ = (
        UniqueConstraint("account_id", "key", name="uq_idempotency_account_key"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("idm"))

    account_id: Mapped[str] = mapped_column(String, ForeignKey("accounts.id"), nullable=False)

    key: Mapped[str] = mapped_column(String(200), nullable=False)
    request_hash: Mapped[str] = mapped_column(String(80), nullable=False)

    # Stored response (so retries return the same thing)
    response: Mapped[dict] = mapped_column(JsonDict, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
