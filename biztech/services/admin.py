from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from biztech.core.config import settings
from biztech.core.errors import AuthorizationError, ConflictError, ValidationError
from biztech.core.security import check_password_policy, hash_password
from biztech.models.account import ACCOUNT_STATUSES, ROLES, Account
from biztech.models.listing import Listing
from biztech.schemas.admin import AdminStatsOut, AgentCreate
from biztech.services import outbox, policy
from biztech.services.accounts import find_by_email, get_account, normalize_email
from biztech.services.audit import audit
from biztech.services.auth import Actor

log = logging.getLogger(__name__)


def _require_admin(actor: Actor) -> None:
    if not policy.can_approve(actor):
        raise AuthorizationError("Admin role required")


async def list_users(db: AsyncSession, *, role: str | None = None, status: str | None = None) -> list[Account]:
    if role is not None and role not in ROLES:
        raise ValidationError(f"Unknown role: {role}", code="invalid_filter")
    if status is not None and status not in ACCOUNT_STATUSES:
        raise ValidationError(f"Unknown status: {status}", code="invalid_filter")

    stmt = select(Account)
    if role is not None:
        stmt = stmt.where(Account.role == role)
    if status is not None:
        stmt = stmt.where(Account.account_status == status)
    stmt = stmt.order_by(Account.created_at.desc())
    return list((await db.execute(stmt)).scalars().all())


async def list_pending_users(db: AsyncSession) -> list[Account]:
    # Review queue: verified sellers waiting for approval
    stmt = (
        select(Account)
        .where(
            Account.role == "seller",
            Account.account_status == "pending",
            Account.email_verified.is_(True),
        )
        .order_by(Account.created_at.asc())
    )
    return list((await db.execute(stmt)).scalars().all())


async def set_user_status(db: AsyncSession, actor: Actor, user_id: str, status: str) -> Account:
    _require_admin(actor)
    if status not in ("active", "rejected"):
        raise ValidationError("Status must be 'active' or 'rejected'", code="invalid_status")

    account = await get_account(db, user_id)
    if account.role == "admin":
        raise AuthorizationError("Admin accounts cannot be moderated", code="cannot_moderate_admin")

    previous = account.account_status
    if previous == status:
        return account

    account.account_status = status
    account.updated_by = actor.account_id
    if status == "rejected":
        # kick out any live sessions
        account.token_version += 1

    await audit(
        db,
        actor=actor,
        action="account.status_changed",
        target_type="account",
        target_id=account.id,
        detail={"from": previous, "to": status},
    )
    await db.commit()
    log.info("set_user_status: account=%s %s -> %s by=%s", account.id, previous, status, actor.account_id)
    return account


async def create_agent_account(db: AsyncSession, actor: Actor, payload: AgentCreate) -> Account:
    _require_admin(actor)
    check_password_policy(payload.password)

    email = normalize_email(payload.email)
    if await find_by_email(db, email) is not None:
        raise ConflictError("An account with this email already exists", code="email_taken")

    agent = Account(
        name=payload.name.strip(),
        email=email,
        phone=payload.phone,
        password_hash=hash_password(payload.password),
        role="agent",
        account_status="active",
        email_verified=True,
        created_by=actor.account_id,
        updated_by=actor.account_id,
    )
    try:
        db.add(agent)
        await db.flush()
        outbox.emit(
            db,
            aggregate_type="account",
            aggregate_id=agent.id,
            event_type=outbox.AGENT_CREATED,
            payload={"account_id": agent.id, "email": agent.email, "name": agent.name},
        )
        await audit(db, actor=actor, action="account.agent_created", target_type="account", target_id=agent.id)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("An account with this email already exists", code="email_taken")

    return agent


def _month_start(now: datetime | None = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


async def dashboard_stats(db: AsyncSession) -> AdminStatsOut:
    async def _count(stmt) -> int:
        return int((await db.execute(stmt)).scalar_one())

    total_users = await _count(select(func.count()).select_from(Account))
    pending_approvals = await _count(
        select(func.count()).select_from(Account).where(
            Account.role == "seller",
            Account.account_status == "pending",
            Account.email_verified.is_(True),
        )
    )
    active_listings = await _count(
        select(func.count()).select_from(Listing).where(Listing.status == "active", Listing.is_active.is_(True))
    )
    total_agents = await _count(select(func.count()).select_from(Account).where(Account.role == "agent"))
    paid_this_month = await _count(
        select(func.count()).select_from(Listing).where(
            Listing.tier == "premium",
            Listing.payment_reference.is_not(None),
            Listing.created_at >= _month_start(),
        )
    )

    return AdminStatsOut(
        total_users=total_users,
        pending_approvals=pending_approvals,
        active_listings=active_listings,
        total_agents=total_agents,
        monthly_revenue=paid_this_month * settings.premium_listing_fee,
    )
