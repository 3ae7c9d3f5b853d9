from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from biztech.core.db import get_db
from biztech.schemas.common import MessageResponse
from biztech.schemas.listing import ListingCreate, ListingOut, ListingUpdate
from biztech.services import listings
from biztech.services.auth import Actor, get_actor, get_optional_actor
from biztech.services.idempotency import optional_idempotency_key
from biztech.services.payments import PaymentGateway, get_payment_gateway

router = APIRouter()


@router.get("/listings", response_model=list[ListingOut])
async def search_listings(
    industry: str | None = None,
    region: str | None = None,
    tier: str | None = None,
    min_price: float | None = Query(default=None, ge=0),
    max_price: float | None = Query(default=None, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    viewer: Actor | None = Depends(get_optional_actor),
    db: AsyncSession = Depends(get_db),
) -> list[ListingOut]:
    filters = listings.ListingFilters(
        industry=industry,
        region=region,
        tier=tier,
        min_price=min_price,
        max_price=max_price,
        limit=limit,
        offset=offset,
    )
    return await listings.search_listings(db, filters, viewer)


@router.post("/listings", response_model=ListingOut, status_code=201)
async def create_listing(
    payload: ListingCreate,
    request: Request,
    actor: Actor = Depends(get_actor),
    idempotency_key: str | None = Depends(optional_idempotency_key),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    db: AsyncSession = Depends(get_db),
) -> ListingOut:
    return await listings.create_listing(
        db,
        actor=actor,
        payload=payload,
        gateway=gateway,
        idempotency_key=idempotency_key,
        request_path=str(request.url.path),
    )


@router.get("/listings/{listing_id}", response_model=ListingOut)
async def get_listing(
    listing_id: str,
    viewer: Actor | None = Depends(get_optional_actor),
    db: AsyncSession = Depends(get_db),
) -> ListingOut:
    return await listings.get_listing(db, listing_id, viewer)


@router.put("/listings/{listing_id}", response_model=ListingOut)
async def update_listing(
    listing_id: str,
    payload: ListingUpdate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
) -> ListingOut:
    return await listings.update_listing(db, actor, listing_id, payload)


@router.delete("/listings/{listing_id}", response_model=MessageResponse)
async def delete_listing(
    listing_id: str,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    await listings.delete_listing(db, actor, listing_id)
    return MessageResponse(message="Listing deleted")
