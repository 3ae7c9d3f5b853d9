from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func
from sqlalchemy.types import DateTime


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass

class AuditMixin:
    # Python-side defaults keep the values loaded on the instance after flush (no lazy refresh under asyncio).
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )

    # Account.id that created/updated the record (or "system")
    created_by: Mapped[str | None] = mapped_column(nullable=True)
    updated_by: Mapped[str | None] = mapped_column(nullable=True)


def as_aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone=True columns
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
