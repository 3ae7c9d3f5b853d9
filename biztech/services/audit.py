from __future__ import annotations
from sqlalchemy.ext.asyncio import AsyncSession

from biztech.models.audit_log import AuditLog
from biztech.services.auth import Actor
from biztech.services.redaction import redact_payload

async def audit(
    db: AsyncSession,
    *,
    actor: Actor | None,
    action: str,
    target_type: str | None = None,
    target_id: str | None = None,
    detail: dict | None = None,
) -> None:
    db.add(AuditLog(
        actor_account_id=actor.account_id if actor else None,
        actor_role=actor.role if actor else None,
        action=action,
        target_type=target_type,
        target_id=target_id,
        detail=redact_payload(detail or {}),
    ))
