import asyncio
import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from worker.celery_app import celery
from biztech.core.config import settings
import biztech.models  # noqa: F401  # ensures Models are registered
from biztech.models.base import utcnow
from biztech.models.outbox import OutboxEvent
from biztech.services.mailer import Mailer, build_message
from biztech.services.redaction import redact_payload

log = logging.getLogger(__name__)

MAX_ATTEMPTS = 8


async def handle_outbox_event(db: AsyncSession, outbox_id: str, lease_id: str, mailer: Mailer) -> str:
    """
    Deliver one claimed outbox event. Returns the resulting status
    ("done" | "pending" | "failed" | "skipped").
    """
    stmt = select(OutboxEvent).where(OutboxEvent.id == outbox_id).execution_options(populate_existing=True)
    ev = (await db.execute(stmt)).scalar_one_or_none()
    # Lease ownership check: another dispatcher reclaimed it or it's already done
    if not ev or ev.lease_id != lease_id or ev.status != "processing":
        return "skipped"

    message = build_message(ev.event_type, ev.payload)
    if message is None:
        status, error = "done", None
    else:
        res = await mailer.send(message, request_id=ev.id)
        if res.ok:
            status, error = "done", None
        elif res.retryable and ev.attempts < MAX_ATTEMPTS:
            status, error = "pending", f"{res.error_code}: {res.error_message}"
        else:
            status, error = "failed", f"{res.error_code}: {res.error_message}"

    values = dict(status=status, lease_id=None, lease_expires_at=None, last_error=error)
    if status == "done":
        values["processed_at"] = utcnow()
        # codes and reset tokens must not outlive delivery
        values["payload"] = redact_payload(ev.payload)
    else:
        values["processing_started_at"] = None

    result = await db.execute(
        update(OutboxEvent)
        .where(OutboxEvent.id == outbox_id, OutboxEvent.lease_id == lease_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        # lease lost; do not overwrite
        await db.rollback()
        return "skipped"

    await db.commit()
    if status != "done":
        log.warning("outbox %s: delivery %s (%s)", outbox_id, status, error)
    return status


async def _process_outbox_event(outbox_id: str, lease_id: str) -> None:
    engine = create_async_engine(settings.database_url, pool_pre_ping=True)
    Session = async_sessionmaker(engine, expire_on_commit=False)
    mailer = Mailer()

    try:
        async with Session() as db:
            await handle_outbox_event(db, outbox_id, lease_id, mailer)
    finally:
        await mailer.aclose()
        await engine.dispose()


@celery.task(name="worker.tasks.process_outbox_event", bind=True, max_retries=5)
def process_outbox_event(self, outbox_id: str, lease_id: str) -> None:
    asyncio.run(_process_outbox_event(outbox_id, lease_id))
