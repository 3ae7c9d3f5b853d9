"""
Lease-based claiming of outbox rows.

A dispatcher claims a batch of ``pending`` rows under a fresh lease id, commits,
then hands each row to a Celery worker. Workers only act on rows whose lease
still matches, so a dispatcher that dies mid-batch loses nothing: its leases
expire and the rows return to ``pending``.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from biztech.models.base import utcnow
from biztech.models.outbox import OutboxEvent

log = logging.getLogger(__name__)

PROCESS_TASK = "worker.tasks.process_outbox_event"
OUTBOX_QUEUE = "outbox"


@dataclass(frozen=True)
class Claim:
    lease_id: str
    ids: list[str] = field(default_factory=list)


def _send_to_celery(outbox_id: str, lease_id: str) -> None:
    from worker.celery_app import celery

    celery.send_task(PROCESS_TASK, args=[outbox_id, lease_id], queue=OUTBOX_QUEUE)


async def requeue_expired_leases(db: AsyncSession) -> int:
    result = await db.execute(
        update(OutboxEvent)
        .where(
            OutboxEvent.status == "processing",
            OutboxEvent.lease_expires_at.is_not(None),
            OutboxEvent.lease_expires_at < utcnow(),
        )
        .values(
            status="pending",
            lease_id=None,
            lease_expires_at=None,
            processing_started_at=None,
            last_error="requeued: lease expired",
        )
        .execution_options(synchronize_session=False)
    )
    return int(result.rowcount or 0)


async def claim_batch(db: AsyncSession, *, batch_size: int = 100, lease_minutes: int = 10) -> Claim:
    """Lease up to ``batch_size`` pending rows, oldest first. The caller commits."""
    claim = Claim(lease_id=uuid.uuid4().hex)
    now = utcnow()

    stmt = (
        select(OutboxEvent.id)
        .where(OutboxEvent.status == "pending")
        .order_by(OutboxEvent.created_at.asc())
        .with_for_update(skip_locked=True)
        .limit(batch_size)
    )
    claim.ids.extend((await db.execute(stmt)).scalars().all())
    if not claim.ids:
        return claim

    await db.execute(
        update(OutboxEvent)
        .where(OutboxEvent.id.in_(claim.ids))
        .values(
            status="processing",
            attempts=OutboxEvent.attempts + 1,
            last_error=None,
            lease_id=claim.lease_id,
            lease_expires_at=now + timedelta(minutes=lease_minutes),
            processing_started_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    return claim


async def _release(db: AsyncSession, outbox_id: str, lease_id: str, reason: str) -> None:
    await db.execute(
        update(OutboxEvent)
        .where(OutboxEvent.id == outbox_id, OutboxEvent.lease_id == lease_id)
        .values(
            status="pending",
            lease_id=None,
            lease_expires_at=None,
            processing_started_at=None,
            last_error=reason,
        )
        .execution_options(synchronize_session=False)
    )


async def dispatch_outbox(
    db: AsyncSession,
    *,
    batch_size: int = 100,
    lease_minutes: int = 10,
    enqueue: Callable[[str, str], None] = _send_to_celery,
) -> int:
    """Claim a batch and enqueue it. Returns how many rows reached the broker."""
    requeued = await requeue_expired_leases(db)
    if requeued:
        log.info("outbox: requeued %d expired leases", requeued)

    claim = await claim_batch(db, batch_size=batch_size, lease_minutes=lease_minutes)
    # workers must see the lease before their task arrives
    await db.commit()

    sent = 0
    broken = False
    for outbox_id in claim.ids:
        try:
            enqueue(outbox_id, claim.lease_id)
            sent += 1
        except Exception as e:
            log.warning("outbox %s: enqueue failed: %s", outbox_id, e)
            await _release(db, outbox_id, claim.lease_id, f"enqueue failed: {type(e).__name__}: {e}")
            broken = True

    if broken:
        await db.commit()
    return sent
