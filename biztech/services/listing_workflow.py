"""
Listing lifecycle after submission.

    pending --assign_agent--> active      (terminal; agent may be reassigned)
    pending --reject_listing--> rejected  (terminal)

Approval and agent assignment are a single conditional UPDATE so nobody can
observe an active listing without an agent. Deliverable flags are independent
premium-only booleans owned by the assigned agent.
"""
from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from biztech.core.errors import AuthorizationError, ConflictError, ValidationError
from biztech.models.account import Account
from biztech.models.listing import DELIVERABLE_FIELDS, Listing
from biztech.schemas.listing import ListingOut
from biztech.services import policy
from biztech.services.audit import audit
from biztech.services.auth import Actor
from biztech.services.listings import load_listing
from biztech.services.visibility import serialize_listing

log = logging.getLogger(__name__)

ASSIGNABLE_STATUSES = ("pending", "active")


async def assign_agent(db: AsyncSession, actor: Actor, listing_id: str, agent_id: str) -> ListingOut:
    if not policy.can_assign_agent(actor):
        raise AuthorizationError("Admin role required")

    listing = await load_listing(db, listing_id)
    if listing.status not in ASSIGNABLE_STATUSES:
        raise ConflictError("Rejected listings cannot be assigned", code="listing_rejected")

    agent = (await db.execute(select(Account).where(Account.id == agent_id))).scalar_one_or_none()
    if not policy.is_assignable_agent(agent):
        raise ValidationError("Target must be an active agent account", code="invalid_agent")

    previous_status = listing.status
    previous_agent = listing.assigned_agent_id

    # status and agent move together; deliverable flags are left untouched on reassignment
    result = await db.execute(
        update(Listing)
        .where(
            Listing.id == listing.id,
            Listing.is_active.is_(True),
            Listing.status.in_(ASSIGNABLE_STATUSES),
        )
        .values(status="active", assigned_agent_id=agent_id, updated_by=actor.account_id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        # rejected or deleted between our read and the write
        await db.rollback()
        raise ConflictError("Listing can no longer be assigned", code="listing_not_assignable")

    await audit(
        db,
        actor=actor,
        action="listing.agent_assigned",
        target_type="listing",
        target_id=listing.id,
        detail={"from_status": previous_status, "from_agent": previous_agent, "to_agent": agent_id},
    )
    await db.commit()
    await db.refresh(listing)

    log.info("assign_agent: listing=%s agent=%s (was %s/%s)", listing.id, agent_id, previous_status, previous_agent)
    return serialize_listing(listing, actor)


async def reject_listing(db: AsyncSession, actor: Actor, listing_id: str) -> ListingOut:
    if not policy.can_approve(actor):
        raise AuthorizationError("Admin role required")

    listing = await load_listing(db, listing_id)
    if listing.status != "pending":
        raise ConflictError(f"Only pending listings can be rejected (status is {listing.status})", code="listing_not_pending")

    result = await db.execute(
        update(Listing)
        .where(Listing.id == listing.id, Listing.status == "pending")
        .values(status="rejected", updated_by=actor.account_id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise ConflictError("Listing is no longer pending", code="listing_not_pending")

    await audit(db, actor=actor, action="listing.rejected", target_type="listing", target_id=listing.id)
    await db.commit()
    await db.refresh(listing)
    return serialize_listing(listing, actor)


async def toggle_deliverable(db: AsyncSession, actor: Actor, listing_id: str, field: str, value: bool) -> ListingOut:
    if field not in DELIVERABLE_FIELDS:
        raise ValidationError(f"Unknown deliverable: {field}", code="invalid_deliverable")

    listing = await load_listing(db, listing_id)
    if not policy.can_toggle_deliverable(actor, listing):
        raise AuthorizationError("Only the assigned agent can update deliverables")
    if listing.tier != "premium":
        raise ValidationError("Deliverables only apply to premium listings", code="deliverables_premium_only")

    if getattr(listing, field) == value:
        # idempotent: nothing to write, nothing to audit
        return serialize_listing(listing, actor)

    setattr(listing, field, value)
    listing.updated_by = actor.account_id
    await audit(
        db,
        actor=actor,
        action="listing.deliverable_updated",
        target_type="listing",
        target_id=listing.id,
        detail={"field": field, "value": value},
    )
    await db.commit()
    return serialize_listing(listing, actor)


async def list_pending_listings(db: AsyncSession, actor: Actor) -> list[ListingOut]:
    if not policy.can_approve(actor):
        raise AuthorizationError("Admin role required")

    stmt = (
        select(Listing)
        .where(Listing.status == "pending", Listing.is_active.is_(True))
        .order_by(Listing.created_at.asc())
    )
    rows = (await db.execute(stmt)).scalars().all()
    return [serialize_listing(r, actor) for r in rows]


async def list_assigned_listings(db: AsyncSession, actor: Actor) -> list[ListingOut]:
    stmt = (
        select(Listing)
        .where(Listing.assigned_agent_id == actor.account_id, Listing.is_active.is_(True))
        .order_by(Listing.updated_at.desc())
    )
    rows = (await db.execute(stmt)).scalars().all()
    return [serialize_listing(r, actor) for r in rows]
