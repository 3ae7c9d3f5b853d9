"""
Optional ``Idempotency-Key`` support for writes that must not happen twice
(a premium listing charges a fee). Keys are scoped per account.
"""
from __future__ import annotations

import hashlib
import json

from fastapi import Header
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from biztech.core.errors import ConflictError, ValidationError
from biztech.models.idempotency import IdempotencyKey

MAX_KEY_LENGTH = 200


def request_fingerprint(path: str, body: dict) -> str:
    raw = json.dumps({"path": path, "body": body}, sort_keys=True, separators=(",", ":"))
    return "sha256:" + hashlib.sha256(raw.encode("utf-8")).hexdigest()


async def optional_idempotency_key(idempotency_key: str | None = Header(default=None)) -> str | None:
    if idempotency_key is not None and len(idempotency_key) > MAX_KEY_LENGTH:
        raise ValidationError("Idempotency-Key too long", code="idempotency_key_too_long")
    return idempotency_key or None


async def reserve_or_replay(
    db: AsyncSession,
    *,
    account_id: str,
    key: str,
    request_path: str,
    request_body: dict,
) -> tuple[IdempotencyKey, bool]:
    """
    Returns ``(row, replay)``. When ``replay`` is true the caller answers with
    ``row.response``; otherwise the key is now reserved in the caller's transaction
    and disappears again if that transaction rolls back.
    """
    fingerprint = request_fingerprint(request_path, request_body)

    stmt = select(IdempotencyKey).where(IdempotencyKey.account_id == account_id, IdempotencyKey.key == key)
    row = (await db.execute(stmt)).scalar_one_or_none()
    if row is not None:
        if row.request_hash != fingerprint:
            raise ConflictError("Idempotency-Key reuse with different request", code="idempotency_key_reused")
        if not row.response:
            raise ConflictError("A request with this Idempotency-Key is still in progress", code="idempotency_in_progress")
        return row, True

    row = IdempotencyKey(account_id=account_id, key=key, request_hash=fingerprint, response={})
    db.add(row)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("A request with this Idempotency-Key is still in progress", code="idempotency_in_progress")
    return row, False


def remember_response(row: IdempotencyKey, response: dict) -> None:
    row.response = response
