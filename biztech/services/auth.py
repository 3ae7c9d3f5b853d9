from dataclasses import dataclass

from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from biztech.core.db import get_db
from biztech.core.errors import AuthenticationError, AuthorizationError
from biztech.core.security import decode_access_token
from biztech.models.account import Account
from biztech.services import policy

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Actor:
    """Request-scoped session handle resolved from the bearer token."""

    account_id: str
    role: str  # "admin" | "agent" | "seller" | "buyer"
    account_status: str  # "pending" | "active" | "rejected"
    email: str
    name: str


def actor_from_account(account: Account) -> Actor:
    return Actor(
        account_id=account.id,
        role=account.role,
        account_status=account.account_status,
        email=account.email,
        name=account.name,
    )


async def _resolve(db: AsyncSession, token: str) -> Actor:
    claims = decode_access_token(token)
    account = (await db.execute(select(Account).where(Account.id == claims.account_id))).scalar_one_or_none()
    # token_version mismatch means logout or password reset happened after issue
    if account is None or account.token_version != claims.token_version:
        raise AuthenticationError("Invalid or expired token", code="invalid_token")
    return actor_from_account(account)


async def get_actor(
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Actor:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Missing bearer token", code="missing_token")
    return await _resolve(db, credentials.credentials)


async def get_optional_actor(
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Actor | None:
    # Anonymous is fine here, but a presented token must still be valid.
    if credentials is None or not credentials.credentials:
        return None
    return await _resolve(db, credentials.credentials)


def require_admin(actor: Actor = Depends(get_actor)) -> Actor:
    if not policy.can_approve(actor):
        raise AuthorizationError("Admin role required")
    return actor


def require_agent(actor: Actor = Depends(get_actor)) -> Actor:
    if actor.role != "agent":
        raise AuthorizationError("Agent role required")
    return actor


def require_agent_or_admin(actor: Actor = Depends(get_actor)) -> Actor:
    if actor.role not in ("agent", "admin"):
        raise AuthorizationError("Agent or admin role required")
    return actor


def require_seller(actor: Actor = Depends(get_actor)) -> Actor:
    if actor.role != "seller":
        raise AuthorizationError("Seller role required")
    return actor


def require_buyer(actor: Actor = Depends(get_actor)) -> Actor:
    if actor.role != "buyer":
        raise AuthorizationError("Buyer role required")
    return actor
