import pytest
from sqlalchemy import select

from biztech.models.account import Account
from biztech.models.outbox import OutboxEvent
from biztech.services import outbox
from tests.fixtures_seed import PASSWORD, auth, make_account


async def _latest_payload(db_session, event_type: str, email: str) -> dict:
    stmt = (
        select(OutboxEvent.payload)
        .where(OutboxEvent.event_type == event_type)
        .order_by(OutboxEvent.created_at.desc())
    )
    for payload in (await db_session.execute(stmt)).scalars():
        if payload["email"] == email:
            return payload
    raise AssertionError(f"no {event_type} event for {email}")


async def _register(client, **overrides):
    body = {
        "role": "buyer",
        "name": "Bea Buyer",
        "email": "bea@example.com",
        "password": PASSWORD,
        "financial_means": "500k-1M",
    }
    body.update(overrides)
    return await client.post("/v1/auth/register", json=body)


async def test_buyer_register_verify_and_use_token(client, db_session):
    r = await _register(client)
    assert r.status_code == 201
    assert r.json()["email"] == "bea@example.com"

    # unverified accounts cannot sign in
    r = await client.post("/v1/auth/login", json={"email": "bea@example.com", "password": PASSWORD})
    assert r.status_code == 403
    assert r.json()["code"] == "email_not_verified"

    payload = await _latest_payload(db_session, outbox.VERIFICATION_REQUESTED, "bea@example.com")
    r = await client.post("/v1/auth/verify-email", json={"email": "bea@example.com", "otp": payload["code"]})
    assert r.status_code == 200
    body = r.json()
    assert body["require_approval"] is False
    assert body["token"]
    assert body["account"]["role"] == "buyer"
    assert body["account"]["account_status"] == "active"
    assert body["account"]["financial_means"] == "500k-1M"

    r = await client.get("/v1/me", headers={"Authorization": f"Bearer {body['token']}"})
    assert r.status_code == 200
    assert r.json()["email"] == "bea@example.com"


async def test_seller_verification_requires_approval(client, db_session):
    r = await _register(
        client,
        role="seller",
        email="sam@example.com",
        agreed_commission=True,
        financial_means=None,
    )
    assert r.status_code == 201

    payload = await _latest_payload(db_session, outbox.VERIFICATION_REQUESTED, "sam@example.com")
    r = await client.post("/v1/auth/verify-email", json={"email": "sam@example.com", "otp": payload["code"]})
    assert r.status_code == 200
    body = r.json()
    assert body["require_approval"] is True
    assert body["token"] is None

    status = (await db_session.execute(
        select(Account.account_status).where(Account.email == "sam@example.com")
    )).scalar_one()
    assert status == "pending"


async def test_register_rejects_weak_password_and_staff_roles(client):
    r = await _register(client, password="weak")
    assert r.status_code == 422
    assert r.json()["code"] == "weak_password"

    r = await _register(client, role="agent")
    assert r.status_code == 422
    assert r.json()["code"] == "validation_error"


async def test_seller_must_accept_commission(client):
    r = await _register(client, role="seller", email="s2@example.com", agreed_commission=False, financial_means=None)
    assert r.status_code == 422
    assert r.json()["code"] == "commission_not_accepted"


async def test_duplicate_email(client, buyer):
    r = await _register(client, email="BUYER@example.com")
    assert r.status_code == 409
    assert r.json()["code"] == "email_taken"


async def test_wrong_code_counts_attempts(client, db_session):
    await _register(client)
    r = await client.post("/v1/auth/verify-email", json={"email": "bea@example.com", "otp": "000000x"})
    assert r.status_code == 401
    assert r.json()["code"] == "invalid_code"


async def test_resend_invalidates_previous_code(client, db_session):
    await _register(client)
    first = await _latest_payload(db_session, outbox.VERIFICATION_REQUESTED, "bea@example.com")

    r = await client.post("/v1/auth/resend-verification", json={"email": "bea@example.com"})
    assert r.status_code == 200
    second = await _latest_payload(db_session, outbox.VERIFICATION_REQUESTED, "bea@example.com")

    if first["code"] != second["code"]:
        r = await client.post("/v1/auth/verify-email", json={"email": "bea@example.com", "otp": first["code"]})
        assert r.status_code == 401

    r = await client.post("/v1/auth/verify-email", json={"email": "bea@example.com", "otp": second["code"]})
    assert r.status_code == 200


async def test_login_wrong_password_is_401(client, buyer):
    r = await client.post("/v1/auth/login", json={"email": buyer.email, "password": "Wrong1234"})
    assert r.status_code == 401
    assert r.json()["code"] == "invalid_credentials"
    assert r.headers["www-authenticate"] == "Bearer"


async def test_login_rejected_account(client, db_session):
    await make_account(db_session, role="seller", email="gone@example.com", status="rejected")
    r = await client.post("/v1/auth/login", json={"email": "gone@example.com", "password": PASSWORD})
    assert r.status_code == 403
    assert r.json()["code"] == "account_rejected"


async def test_pending_seller_can_sign_in(client, db_session):
    await make_account(db_session, role="seller", email="wait@example.com", status="pending")
    r = await client.post("/v1/auth/login", json={"email": "wait@example.com", "password": PASSWORD})
    assert r.status_code == 200
    assert r.json()["account"]["account_status"] == "pending"


async def test_logout_revokes_token(client, buyer):
    r = await client.post("/v1/auth/login", json={"email": buyer.email, "password": PASSWORD})
    headers = {"Authorization": f"Bearer {r.json()['token']}"}

    assert (await client.get("/v1/me", headers=headers)).status_code == 200
    assert (await client.post("/v1/auth/logout", headers=headers)).status_code == 200

    r = await client.get("/v1/me", headers=headers)
    assert r.status_code == 401
    assert r.json()["code"] == "invalid_token"


async def test_missing_and_bad_tokens(client):
    r = await client.get("/v1/me")
    assert r.status_code == 401
    assert r.json()["code"] == "missing_token"

    r = await client.get("/v1/me", headers={"Authorization": "Bearer garbage"})
    assert r.status_code == 401


async def test_forgot_and_reset_password(client, db_session, buyer):
    old_headers = auth(buyer)

    r = await client.post("/v1/auth/forgot-password", json={"email": buyer.email})
    assert r.status_code == 200
    payload = await _latest_payload(db_session, outbox.PASSWORD_RESET_REQUESTED, buyer.email)

    r = await client.put(f"/v1/auth/reset-password/{payload['reset_token']}", json={"password": "NewSecret9"})
    assert r.status_code == 200

    # old sessions are gone, the new password works, the link is single use
    assert (await client.get("/v1/me", headers=old_headers)).status_code == 401
    r = await client.post("/v1/auth/login", json={"email": buyer.email, "password": "NewSecret9"})
    assert r.status_code == 200
    r = await client.put(f"/v1/auth/reset-password/{payload['reset_token']}", json={"password": "Another99"})
    assert r.status_code == 401
    assert r.json()["code"] == "invalid_reset_token"


async def test_forgot_password_does_not_reveal_unknown_email(client, db_session):
    r = await client.post("/v1/auth/forgot-password", json={"email": "nobody@example.com"})
    assert r.status_code == 200
    count = len((await db_session.execute(select(OutboxEvent.id))).all())
    assert count == 0


@pytest.mark.parametrize("field,value", [("name", "Renamed"), ("phone", "+971500000000")])
async def test_update_profile(client, buyer, field, value):
    r = await client.patch("/v1/me", json={field: value}, headers=auth(buyer))
    assert r.status_code == 200
    assert r.json()[field] == value


async def test_financial_means_is_buyer_only(client, seller):
    r = await client.patch("/v1/me", json={"financial_means": "10M+"}, headers=auth(seller))
    assert r.status_code == 422
    assert r.json()["code"] == "field_not_allowed"
