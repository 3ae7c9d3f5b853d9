from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from biztech.core.db import get_db
from biztech.schemas.account import AccountOut, ProfileUpdate, account_out
from biztech.services import accounts
from biztech.services.auth import Actor, get_actor

router = APIRouter()


@router.get("/me", response_model=AccountOut)
async def me(actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
    return account_out(await accounts.get_account(db, actor.account_id))


@router.patch("/me", response_model=AccountOut)
async def update_me(
    payload: ProfileUpdate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    return account_out(await accounts.update_profile(db, actor, payload))
