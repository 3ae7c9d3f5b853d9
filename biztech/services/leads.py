from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from biztech.core.errors import (
    AuthorizationError,
    ConflictError,
    DuplicateEnquiryError,
    NotFoundError,
    ValidationError,
)
from biztech.models.account import Account
from biztech.models.lead import LEAD_STATUSES, Lead
from biztech.models.listing import Listing
from biztech.schemas.lead import AgentLeadOut, BuyerEnquiryOut, LeadOut
from biztech.services import policy
from biztech.services.audit import audit
from biztech.services.auth import Actor
from biztech.services.listings import load_listing

log = logging.getLogger(__name__)

DUPLICATE_MESSAGE = "You have already sent an enquiry for this listing"


def lead_out(lead: Lead) -> LeadOut:
    return LeadOut(
        id=lead.id,
        listing_id=lead.listing_id,
        buyer_id=lead.buyer_id,
        message=lead.message,
        status=lead.status,
        created_at=lead.created_at,
        updated_at=lead.updated_at,
    )


async def _existing_lead(db: AsyncSession, listing_id: str, buyer_id: str) -> Lead | None:
    stmt = select(Lead).where(Lead.listing_id == listing_id, Lead.buyer_id == buyer_id)
    return (await db.execute(stmt)).scalar_one_or_none()


async def create_lead(db: AsyncSession, actor: Actor, listing_id: str, message: str) -> LeadOut:
    listing = await load_listing(db, listing_id)
    # a buyer cannot tell a pending or rejected listing from a missing one
    if not policy.can_view_unpublished(actor, listing):
        raise NotFoundError("Listing not found")

    existing = await _existing_lead(db, listing.id, actor.account_id)
    if not policy.can_enquire(actor, listing, has_existing_lead=existing is not None):
        if existing is not None:
            raise DuplicateEnquiryError(DUPLICATE_MESSAGE)
        raise AuthorizationError("Only active buyer accounts can submit enquiries", code="buyer_required")
    if listing.status != "active":
        raise ConflictError("This listing is not open for enquiries", code="listing_not_open")

    lead = Lead(
        listing_id=listing.id,
        buyer_id=actor.account_id,
        message=message.strip(),
        status="new",
        created_by=actor.account_id,
        updated_by=actor.account_id,
    )
    try:
        db.add(lead)
        await db.flush()
    except IntegrityError:
        # concurrent submission won the unique (listing_id, buyer_id) slot
        await db.rollback()
        raise DuplicateEnquiryError(DUPLICATE_MESSAGE)

    await audit(db, actor=actor, action="lead.created", target_type="lead", target_id=lead.id)
    await db.commit()

    log.info("create_lead: lead=%s listing=%s buyer=%s", lead.id, listing.id, actor.account_id)
    return lead_out(lead)


async def update_lead_status(db: AsyncSession, actor: Actor, lead_id: str, status: str) -> LeadOut:
    # Any of the four values is accepted in any order, matching what agents are offered.
    if status not in LEAD_STATUSES:
        raise ValidationError(f"Unknown lead status: {status}", code="invalid_status")

    lead = (await db.execute(select(Lead).where(Lead.id == lead_id))).scalar_one_or_none()
    if lead is None:
        raise NotFoundError("Lead not found")

    listing = (await db.execute(select(Listing).where(Listing.id == lead.listing_id))).scalar_one()
    if not policy.can_update_lead_status(actor, listing):
        raise AuthorizationError("Only the assigned agent or an admin can update this lead")

    if lead.status == status:
        return lead_out(lead)

    previous = lead.status
    lead.status = status
    lead.updated_by = actor.account_id
    await audit(
        db,
        actor=actor,
        action="lead.status_changed",
        target_type="lead",
        target_id=lead.id,
        detail={"from": previous, "to": status},
    )
    await db.commit()
    return lead_out(lead)


async def list_buyer_enquiries(db: AsyncSession, actor: Actor) -> list[BuyerEnquiryOut]:
    stmt = (
        select(Lead, Listing.title)
        .join(Listing, Listing.id == Lead.listing_id)
        .where(Lead.buyer_id == actor.account_id, Listing.is_active.is_(True))
        .order_by(Lead.created_at.desc())
    )
    rows = (await db.execute(stmt)).all()
    return [BuyerEnquiryOut(**lead_out(lead).model_dump(), listing_title=title) for lead, title in rows]


async def list_agent_leads(db: AsyncSession, actor: Actor) -> list[AgentLeadOut]:
    stmt = (
        select(Lead, Listing.title, Account)
        .join(Listing, Listing.id == Lead.listing_id)
        .join(Account, Account.id == Lead.buyer_id)
        .where(Listing.assigned_agent_id == actor.account_id, Listing.is_active.is_(True))
        .order_by(Lead.created_at.desc())
    )
    rows = (await db.execute(stmt)).all()
    return [
        AgentLeadOut(
            **lead_out(lead).model_dump(),
            listing_title=title,
            buyer_name=buyer.name,
            buyer_email=buyer.email,
            buyer_financial_means=buyer.financial_means,
        )
        for lead, title, buyer in rows
    ]
