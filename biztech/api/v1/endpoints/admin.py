from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from biztech.core.db import get_db
from biztech.schemas.account import AccountOut, account_out
from biztech.schemas.admin import AdminStatsOut, AgentCreate, AssignAgentRequest, UserStatusUpdate
from biztech.schemas.listing import ListingOut
from biztech.services import admin, listing_workflow
from biztech.services.auth import Actor, require_admin

router = APIRouter(prefix="/admin")


@router.get("/stats", response_model=AdminStatsOut)
async def stats(actor: Actor = Depends(require_admin), db: AsyncSession = Depends(get_db)) -> AdminStatsOut:
    return await admin.dashboard_stats(db)


@router.get("/users", response_model=list[AccountOut])
async def list_users(
    role: str | None = None,
    status: str | None = None,
    actor: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return [account_out(a) for a in await admin.list_users(db, role=role, status=status)]


@router.get("/pending-users", response_model=list[AccountOut])
async def pending_users(actor: Actor = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    return [account_out(a) for a in await admin.list_pending_users(db)]


@router.get("/agents", response_model=list[AccountOut])
async def list_agents(actor: Actor = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    return [account_out(a) for a in await admin.list_users(db, role="agent")]


@router.put("/users/{user_id}/status", response_model=AccountOut)
async def set_user_status(
    user_id: str,
    payload: UserStatusUpdate,
    actor: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return account_out(await admin.set_user_status(db, actor, user_id, payload.status))


@router.post("/create-agent", response_model=AccountOut, status_code=201)
async def create_agent(
    payload: AgentCreate,
    actor: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return account_out(await admin.create_agent_account(db, actor, payload))


@router.get("/pending-listings", response_model=list[ListingOut])
async def pending_listings(actor: Actor = Depends(require_admin), db: AsyncSession = Depends(get_db)) -> list[ListingOut]:
    return await listing_workflow.list_pending_listings(db, actor)


@router.post("/assign-agent", response_model=ListingOut)
async def assign_agent(
    payload: AssignAgentRequest,
    actor: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ListingOut:
    return await listing_workflow.assign_agent(db, actor, payload.listing_id, payload.agent_id)


@router.post("/listings/{listing_id}/reject", response_model=ListingOut)
async def reject_listing(
    listing_id: str,
    actor: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ListingOut:
    return await listing_workflow.reject_listing(db, actor, listing_id)
