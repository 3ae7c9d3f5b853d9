from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from biztech.core.db import get_db
from biztech.schemas.lead import AgentLeadOut, LeadOut, LeadStatusUpdate
from biztech.schemas.listing import DeliverableUpdate, ListingOut
from biztech.services import leads, listing_workflow
from biztech.services.auth import Actor, require_agent, require_agent_or_admin

router = APIRouter(prefix="/agent")


@router.get("/listings", response_model=list[ListingOut])
async def assigned_listings(actor: Actor = Depends(require_agent), db: AsyncSession = Depends(get_db)) -> list[ListingOut]:
    return await listing_workflow.list_assigned_listings(db, actor)


@router.put("/listings/{listing_id}/deliverables", response_model=ListingOut)
async def update_deliverable(
    listing_id: str,
    payload: DeliverableUpdate,
    actor: Actor = Depends(require_agent),
    db: AsyncSession = Depends(get_db),
) -> ListingOut:
    return await listing_workflow.toggle_deliverable(db, actor, listing_id, payload.field, payload.value)


@router.get("/leads", response_model=list[AgentLeadOut])
async def my_leads(actor: Actor = Depends(require_agent), db: AsyncSession = Depends(get_db)) -> list[AgentLeadOut]:
    return await leads.list_agent_leads(db, actor)


@router.put("/leads/{lead_id}", response_model=LeadOut)
async def update_lead_status(
    lead_id: str,
    payload: LeadStatusUpdate,
    actor: Actor = Depends(require_agent_or_admin),
    db: AsyncSession = Depends(get_db),
) -> LeadOut:
    return await leads.update_lead_status(db, actor, lead_id, payload.status)
