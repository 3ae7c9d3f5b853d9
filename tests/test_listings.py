from sqlalchemy import func, select

from biztech.models.idempotency import IdempotencyKey
from biztech.models.listing import Listing
from tests.fixtures_seed import auth, listing_payload, make_account, make_listing


async def _listing_count(db_session) -> int:
    return (await db_session.execute(select(func.count()).select_from(Listing))).scalar_one()


async def test_basic_listing_created_pending_without_payment(client, db_session, seller, payment_gateway):
    r = await client.post("/v1/listings", json=listing_payload(price=499_999), headers=auth(seller))
    assert r.status_code == 201
    body = r.json()
    assert body["tier"] == "basic"
    assert body["status"] == "pending"
    assert body["assigned_agent_id"] is None
    assert body["private_data"]["owner_name"] == "Ola Owner"
    assert payment_gateway.calls == []


async def test_premium_requires_payment_token(client, db_session, seller, payment_gateway):
    r = await client.post("/v1/listings", json=listing_payload(price=500_000), headers=auth(seller))
    assert r.status_code == 422
    assert r.json()["code"] == "payment_required"
    assert await _listing_count(db_session) == 0
    assert payment_gateway.calls == []


async def test_premium_charges_fee(client, db_session, seller, payment_gateway):
    r = await client.post(
        "/v1/listings",
        json=listing_payload(price=2_000_000, payment_token="tok_visa"),
        headers=auth(seller),
    )
    assert r.status_code == 201
    body = r.json()
    assert body["tier"] == "premium"
    assert body["deliverables"] == {
        "sale_pack_ready": False,
        "financial_analysis_ready": False,
        "legal_attestation_ready": False,
    }
    assert payment_gateway.calls == [
        {"amount": 1_500, "currency": "AED", "reference": body["id"], "payment_token": "tok_visa"}
    ]
    ref = (await db_session.execute(select(Listing.payment_reference).where(Listing.id == body["id"]))).scalar_one()
    assert ref == "pay_1"


async def test_failed_payment_persists_nothing(client, db_session, seller, payment_gateway):
    payment_gateway.fail = True
    r = await client.post(
        "/v1/listings",
        json=listing_payload(price=900_000, payment_token="tok_declined"),
        headers=auth(seller),
    )
    assert r.status_code == 502
    assert r.json()["code"] == "payment_failed"
    assert await _listing_count(db_session) == 0


async def test_idempotent_create_does_not_charge_twice(client, db_session, seller, payment_gateway):
    headers = {**auth(seller), "Idempotency-Key": "create-1"}
    body = listing_payload(price=800_000, payment_token="tok_visa")

    r1 = await client.post("/v1/listings", json=body, headers=headers)
    r2 = await client.post("/v1/listings", json=body, headers=headers)
    assert r1.status_code == 201
    assert r2.status_code == 201
    assert r2.json()["id"] == r1.json()["id"]
    assert len(payment_gateway.calls) == 1
    assert await _listing_count(db_session) == 1

    r3 = await client.post("/v1/listings", json=listing_payload(price=900_000, payment_token="tok_visa"), headers=headers)
    assert r3.status_code == 409
    assert r3.json()["code"] == "idempotency_key_reused"


async def test_failed_payment_releases_idempotency_key(client, db_session, seller, payment_gateway):
    payment_gateway.fail = True
    headers = {**auth(seller), "Idempotency-Key": "create-2"}
    body = listing_payload(price=800_000, payment_token="tok_visa")

    assert (await client.post("/v1/listings", json=body, headers=headers)).status_code == 502
    keys = (await db_session.execute(select(func.count()).select_from(IdempotencyKey))).scalar_one()
    assert keys == 0

    payment_gateway.fail = False
    assert (await client.post("/v1/listings", json=body, headers=headers)).status_code == 201


async def test_only_active_sellers_create(client, db_session, buyer):
    pending = await make_account(db_session, role="seller", email="p@example.com", status="pending")
    for account in (pending, buyer):
        r = await client.post("/v1/listings", json=listing_payload(), headers=auth(account))
        assert r.status_code == 403
        assert r.json()["code"] == "seller_not_active"


async def test_commission_must_be_accepted(client, seller):
    r = await client.post("/v1/listings", json=listing_payload(agreed_to_commission=False), headers=auth(seller))
    assert r.status_code == 422
    assert r.json()["code"] == "commission_not_accepted"


async def test_pending_listing_hidden_from_public(client, db_session, seller, buyer):
    listing = await make_listing(db_session, seller)

    assert (await client.get(f"/v1/listings/{listing.id}")).status_code == 404
    assert (await client.get(f"/v1/listings/{listing.id}", headers=auth(buyer))).status_code == 404

    r = await client.get(f"/v1/listings/{listing.id}", headers=auth(seller))
    assert r.status_code == 200
    assert r.json()["private_data"]["legal_business_name"] == "Marina Cafe LLC"


async def test_active_listing_public_view_and_counter(client, db_session, seller, agent, buyer):
    listing = await make_listing(db_session, seller, status="active", agent=agent)

    r = await client.get(f"/v1/listings/{listing.id}")
    assert r.status_code == 200
    body = r.json()
    assert body["private_data"] is None
    assert body["assigned_agent_id"] is None
    assert body["public_data"]["title"] == "Cafe in Marina"

    r = await client.get(f"/v1/listings/{listing.id}", headers=auth(buyer))
    assert r.json()["views"] == 2
    assert r.json()["private_data"] is None

    r = await client.get(f"/v1/listings/{listing.id}", headers=auth(agent))
    assert r.json()["private_data"]["full_address"] == "Shop 4, Marina Walk, Dubai"


async def test_search_returns_active_only_with_filters(client, db_session, seller, agent):
    await make_listing(db_session, seller, status="active", agent=agent, industry="Retail", price=300_000)
    await make_listing(db_session, seller, status="active", agent=agent, industry="Tech", price=1_200_000)
    await make_listing(db_session, seller, industry="Tech", price=700_000)

    r = await client.get("/v1/listings")
    assert r.status_code == 200
    assert len(r.json()) == 2
    assert all(item["private_data"] is None for item in r.json())

    r = await client.get("/v1/listings", params={"industry": "Tech"})
    assert [item["public_data"]["price"] for item in r.json()] == [1_200_000]

    r = await client.get("/v1/listings", params={"tier": "basic"})
    assert [item["public_data"]["industry"] for item in r.json()] == ["Retail"]

    r = await client.get("/v1/listings", params={"min_price": 400_000, "max_price": 2_000_000})
    assert len(r.json()) == 1

    r = await client.get("/v1/listings", params={"tier": "gold"})
    assert r.status_code == 422
    assert r.json()["code"] == "invalid_filter"


async def test_owner_update_keeps_tier(client, db_session, seller):
    listing = await make_listing(db_session, seller, price=450_000)

    r = await client.put(f"/v1/listings/{listing.id}", json={"price": 650_000, "title": "Bigger cafe"}, headers=auth(seller))
    assert r.status_code == 200
    body = r.json()
    assert body["public_data"]["price"] == 650_000
    assert body["public_data"]["title"] == "Bigger cafe"
    assert body["tier"] == "basic"


async def test_non_owner_cannot_update(client, db_session, seller, admin):
    listing = await make_listing(db_session, seller)
    other = await make_account(db_session, role="seller", email="other@example.com")
    for account in (other, admin):
        r = await client.put(f"/v1/listings/{listing.id}", json={"title": "Mine"}, headers=auth(account))
        assert r.status_code == 403


async def test_rejected_listing_is_read_only(client, db_session, seller):
    listing = await make_listing(db_session, seller, status="rejected")
    r = await client.put(f"/v1/listings/{listing.id}", json={"title": "Again"}, headers=auth(seller))
    assert r.status_code == 409
    assert r.json()["code"] == "listing_rejected"


async def test_soft_delete(client, db_session, seller, admin):
    mine = await make_listing(db_session, seller)
    other = await make_listing(db_session, seller)

    assert (await client.delete(f"/v1/listings/{mine.id}", headers=auth(seller))).status_code == 200
    assert (await client.delete(f"/v1/listings/{other.id}", headers=auth(admin))).status_code == 200

    assert (await client.get(f"/v1/listings/{mine.id}", headers=auth(seller))).status_code == 404
    assert await _listing_count(db_session) == 2

    r = await client.get("/v1/seller/listings", headers=auth(seller))
    assert r.json() == []


async def test_seller_listings(client, db_session, seller, agent):
    await make_listing(db_session, seller, title="A")
    await make_listing(db_session, seller, title="B", status="active", agent=agent)
    other = await make_account(db_session, role="seller", email="other@example.com")
    await make_listing(db_session, other, title="C")

    r = await client.get("/v1/seller/listings", headers=auth(seller))
    assert r.status_code == 200
    assert sorted(item["public_data"]["title"] for item in r.json()) == ["A", "B"]
    assert all(item["private_data"] is not None for item in r.json())
