"""
Single source of truth for "can this account do this".

Every function is a pure decision over an optional actor (``None`` is an
unauthenticated caller) and plain listing/account attributes. Nothing here
raises; turning a ``False`` into an error is the caller's job.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from biztech.services.auth import Actor


class ListingLike(Protocol):
    seller_id: str
    assigned_agent_id: str | None
    status: str
    tier: str


class AccountLike(Protocol):
    role: str
    account_status: str


def is_admin(actor: Actor | None) -> bool:
    return actor is not None and actor.role == "admin"


def is_active(actor: Actor | None) -> bool:
    return actor is not None and actor.account_status == "active"


def can_approve(actor: Actor | None) -> bool:
    return is_admin(actor)


def can_assign_agent(actor: Actor | None) -> bool:
    return is_admin(actor)


def is_assignable_agent(account: AccountLike | None) -> bool:
    return account is not None and account.role == "agent" and account.account_status == "active"


def is_owner(actor: Actor | None, listing: ListingLike) -> bool:
    return actor is not None and actor.account_id == listing.seller_id


def is_assigned_agent(actor: Actor | None, listing: ListingLike) -> bool:
    return (
        actor is not None
        and listing.assigned_agent_id is not None
        and actor.account_id == listing.assigned_agent_id
    )


def can_view_private_data(actor: Actor | None, listing: ListingLike) -> bool:
    return is_admin(actor) or is_owner(actor, listing) or is_assigned_agent(actor, listing)


def can_view_unpublished(actor: Actor | None, listing: ListingLike) -> bool:
    # pending/rejected listings are only visible to the people who may see their private data
    return listing.status == "active" or can_view_private_data(actor, listing)


def can_create_listing(actor: Actor | None) -> bool:
    return actor is not None and actor.role == "seller" and is_active(actor)


def can_edit_listing(actor: Actor | None, listing: ListingLike) -> bool:
    return is_owner(actor, listing) and listing.status != "rejected"


def can_delete_listing(actor: Actor | None, listing: ListingLike) -> bool:
    return is_admin(actor) or is_owner(actor, listing)


def can_enquire(actor: Actor | None, listing: ListingLike, *, has_existing_lead: bool) -> bool:
    return (
        actor is not None
        and actor.role == "buyer"
        and is_active(actor)
        and not has_existing_lead
    )


def can_toggle_deliverable(actor: Actor | None, listing: ListingLike) -> bool:
    return (
        actor is not None
        and actor.role == "agent"
        and listing.status == "active"
        and is_assigned_agent(actor, listing)
    )


def can_update_lead_status(actor: Actor | None, listing: ListingLike) -> bool:
    if is_admin(actor):
        return True
    return actor is not None and actor.role == "agent" and is_assigned_agent(actor, listing)
