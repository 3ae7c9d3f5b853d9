from __future__ import annotations

from biztech.models.listing import Listing
from biztech.schemas.listing import DeliverablesOut, ListingOut, ListingPrivateData, ListingPublicData
from biztech.services import policy
from biztech.services.auth import Actor


def serialize_listing(listing: Listing, viewer: Actor | None) -> ListingOut:
    """
    Render a listing for a viewer. Unauthorized viewers get the public shape with
    ``private_data`` (and the fulfilment fields) absent rather than an error.
    """
    authorized = policy.can_view_private_data(viewer, listing)

    out = ListingOut(
        id=listing.id,
        seller_id=listing.seller_id,
        tier=listing.tier,
        status=listing.status,
        views=listing.views,
        public_data=ListingPublicData(
            title=listing.title,
            industry=listing.industry,
            region=listing.region,
            price=listing.price,
            turnover=listing.turnover,
            net_profit=listing.net_profit,
        ),
        description=listing.description,
        created_at=listing.created_at,
    )
    if not authorized:
        return out

    out.private_data = ListingPrivateData(
        legal_business_name=listing.legal_business_name,
        owner_name=listing.owner_name,
        full_address=listing.full_address,
    )
    out.assigned_agent_id = listing.assigned_agent_id
    # deliverables only mean something for premium listings
    if listing.tier == "premium":
        out.deliverables = DeliverablesOut(
            sale_pack_ready=listing.sale_pack_ready,
            financial_analysis_ready=listing.financial_analysis_ready,
            legal_attestation_ready=listing.legal_attestation_ready,
        )
    return out
