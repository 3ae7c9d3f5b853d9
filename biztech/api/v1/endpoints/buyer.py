from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from biztech.core.db import get_db
from biztech.schemas.lead import BuyerEnquiryOut
from biztech.services import leads
from biztech.services.auth import Actor, require_buyer

router = APIRouter(prefix="/buyer")


@router.get("/enquiries", response_model=list[BuyerEnquiryOut])
async def my_enquiries(actor: Actor = Depends(require_buyer), db: AsyncSession = Depends(get_db)) -> list[BuyerEnquiryOut]:
    return await leads.list_buyer_enquiries(db, actor)
