from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from biztech.models.outbox import OutboxEvent

# Events consumed by worker.tasks
VERIFICATION_REQUESTED = "account.verification_requested"
PASSWORD_RESET_REQUESTED = "account.password_reset_requested"
AGENT_CREATED = "account.agent_created"


def emit(
    db: AsyncSession,
    *,
    aggregate_type: str,
    aggregate_id: str,
    event_type: str,
    payload: dict,
) -> OutboxEvent:
    # Written in the caller's transaction; the dispatcher picks it up only after commit.
    ev = OutboxEvent(
        aggregate_type=aggregate_type,
        aggregate_id=aggregate_id,
        event_type=event_type,
        payload=payload,
        status="pending",
    )
    db.add(ev)
    return ev
