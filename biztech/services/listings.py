from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from biztech.core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from biztech.models.listing import TIERS, Listing
from biztech.schemas.listing import ListingCreate, ListingOut, ListingUpdate
from biztech.services import policy
from biztech.services.audit import audit
from biztech.services.auth import Actor
from biztech.services.idempotency import remember_response, reserve_or_replay
from biztech.services.payments import PaymentGateway
from biztech.services.tiers import classify_tier, listing_fee, requires_payment
from biztech.services.visibility import serialize_listing

log = logging.getLogger(__name__)

LISTING_CURRENCY = "AED"


@dataclass(frozen=True)
class ListingFilters:
    industry: str | None = None
    region: str | None = None
    tier: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    limit: int = 50
    offset: int = 0


async def load_listing(db: AsyncSession, listing_id: str) -> Listing:
    stmt = select(Listing).where(Listing.id == listing_id, Listing.is_active.is_(True))
    listing = (await db.execute(stmt)).scalar_one_or_none()
    if listing is None:
        raise NotFoundError("Listing not found")
    return listing


async def create_listing(
    db: AsyncSession,
    *,
    actor: Actor,
    payload: ListingCreate,
    gateway: PaymentGateway,
    idempotency_key: str | None = None,
    request_path: str = "/v1/listings",
) -> ListingOut:
    """
    Create a listing in ``pending``. Premium listings are charged before commit;
    a failed charge rolls the whole creation back, so no unpaid premium listing
    is ever stored.
    """
    if not policy.can_create_listing(actor):
        raise AuthorizationError("Only active seller accounts can create listings", code="seller_not_active")
    if not payload.agreed_to_commission:
        raise ValidationError("You must agree to the commission terms", code="commission_not_accepted")

    tier = classify_tier(payload.public_data.price)
    if requires_payment(tier) and not payload.payment_token:
        raise ValidationError(
            "Premium listings require a payment confirmation",
            code="payment_required",
            details=[{"field": "payment_token", "amount": listing_fee(tier), "currency": LISTING_CURRENCY}],
        )

    reservation = None
    if idempotency_key:
        reservation, replay = await reserve_or_replay(
            db,
            account_id=actor.account_id,
            key=idempotency_key,
            request_path=request_path,
            request_body=payload.model_dump(mode="json"),
        )
        if replay:
            # same request retried: answer as before, never charge twice
            return ListingOut(**reservation.response)

    pub = payload.public_data
    priv = payload.private_data
    listing = Listing(
        seller_id=actor.account_id,
        tier=tier,
        status="pending",
        title=pub.title,
        industry=pub.industry,
        region=pub.region,
        price=pub.price,
        turnover=pub.turnover,
        net_profit=pub.net_profit,
        description=payload.description,
        legal_business_name=priv.legal_business_name,
        owner_name=priv.owner_name,
        full_address=priv.full_address,
        created_by=actor.account_id,
        updated_by=actor.account_id,
    )
    db.add(listing)
    await db.flush()

    if requires_payment(tier):
        try:
            confirmation = await gateway.charge(
                amount=listing_fee(tier),
                currency=LISTING_CURRENCY,
                reference=listing.id,
                payment_token=payload.payment_token,
            )
        except Exception:
            await db.rollback()
            log.warning("create_listing: payment failed, creation rolled back seller=%s", actor.account_id)
            raise
        listing.payment_reference = confirmation.reference

    await audit(
        db,
        actor=actor,
        action="listing.created",
        target_type="listing",
        target_id=listing.id,
        detail={"tier": tier, "price": pub.price},
    )

    out = serialize_listing(listing, actor)
    if reservation is not None:
        remember_response(reservation, out.model_dump(mode="json"))
    await db.commit()

    log.info("create_listing: id=%s tier=%s seller=%s", listing.id, tier, actor.account_id)
    return out


async def get_listing(db: AsyncSession, listing_id: str, viewer: Actor | None) -> ListingOut:
    listing = await load_listing(db, listing_id)
    if not policy.can_view_unpublished(viewer, listing):
        # pending/rejected listings do not exist for the public
        raise NotFoundError("Listing not found")

    # Best-effort counter; a lost increment under a race is acceptable
    await db.execute(
        update(Listing)
        .where(Listing.id == listing.id)
        .values(views=Listing.views + 1)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    await db.refresh(listing)
    return serialize_listing(listing, viewer)


async def search_listings(db: AsyncSession, filters: ListingFilters, viewer: Actor | None = None) -> list[ListingOut]:
    if filters.tier is not None and filters.tier not in TIERS:
        raise ValidationError(f"Unknown tier: {filters.tier}", code="invalid_filter")

    stmt = select(Listing).where(Listing.status == "active", Listing.is_active.is_(True))
    if filters.industry:
        stmt = stmt.where(Listing.industry == filters.industry)
    if filters.region:
        stmt = stmt.where(Listing.region == filters.region)
    if filters.tier:
        stmt = stmt.where(Listing.tier == filters.tier)
    if filters.min_price is not None:
        stmt = stmt.where(Listing.price >= filters.min_price)
    if filters.max_price is not None:
        stmt = stmt.where(Listing.price <= filters.max_price)

    stmt = stmt.order_by(Listing.created_at.desc()).limit(filters.limit).offset(filters.offset)
    rows = (await db.execute(stmt)).scalars().all()
    return [serialize_listing(r, viewer) for r in rows]


async def list_seller_listings(db: AsyncSession, actor: Actor) -> list[ListingOut]:
    stmt = (
        select(Listing)
        .where(Listing.seller_id == actor.account_id, Listing.is_active.is_(True))
        .order_by(Listing.created_at.desc())
    )
    rows = (await db.execute(stmt)).scalars().all()
    return [serialize_listing(r, actor) for r in rows]


async def update_listing(db: AsyncSession, actor: Actor, listing_id: str, payload: ListingUpdate) -> ListingOut:
    listing = await load_listing(db, listing_id)
    if not policy.is_owner(actor, listing):
        raise AuthorizationError("Only the owner can edit this listing")
    if not policy.can_edit_listing(actor, listing):
        raise ConflictError("Rejected listings can no longer be edited", code="listing_rejected")

    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    # tier stays what it was at creation even when the price moves
    for field, value in changes.items():
        setattr(listing, field, value)
    listing.updated_by = actor.account_id

    await audit(
        db,
        actor=actor,
        action="listing.updated",
        target_type="listing",
        target_id=listing.id,
        detail={"fields": sorted(changes)},
    )
    await db.commit()
    return serialize_listing(listing, actor)


async def delete_listing(db: AsyncSession, actor: Actor, listing_id: str) -> None:
    listing = await load_listing(db, listing_id)
    if not policy.can_delete_listing(actor, listing):
        raise AuthorizationError("Only the owner or an admin can delete this listing")

    listing.is_active = False
    listing.updated_by = actor.account_id
    await audit(db, actor=actor, action="listing.deleted", target_type="listing", target_id=listing.id)
    await db.commit()
