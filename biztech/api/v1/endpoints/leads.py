from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from biztech.core.db import get_db
from biztech.schemas.lead import LeadCreate, LeadOut
from biztech.services import leads
from biztech.services.auth import Actor, get_actor

router = APIRouter()


@router.post("/leads", response_model=LeadOut, status_code=201)
async def create_lead(
    payload: LeadCreate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
) -> LeadOut:
    return await leads.create_lead(db, actor, payload.listing_id, payload.message)
