from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from biztech.core.db import get_db
from biztech.schemas.listing import ListingOut
from biztech.services import listings
from biztech.services.auth import Actor, require_seller

router = APIRouter(prefix="/seller")


@router.get("/listings", response_model=list[ListingOut])
async def my_listings(actor: Actor = Depends(require_seller), db: AsyncSession = Depends(get_db)) -> list[ListingOut]:
    return await listings.list_seller_listings(db, actor)
