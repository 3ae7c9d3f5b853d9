import json

import httpx
import pytest

from biztech.core.errors import UpstreamError
from biztech.services.http_client import ServiceHttpClient
from biztech.services.payments import HttpPaymentGateway


def _gateway(status_code: int, body: dict, seen: list) -> HttpPaymentGateway:
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(status_code, json=body)

    return HttpPaymentGateway(
        client=ServiceHttpClient(base_url="http://pay.test", transport=httpx.MockTransport(handler))
    )


async def test_successful_charge():
    seen = []
    gateway = _gateway(200, {"payment_id": "pi_42", "status": "succeeded"}, seen)

    confirmation = await gateway.charge(amount=1500, currency="AED", reference="lst_1", payment_token="tok")
    assert confirmation.reference == "pi_42"
    assert seen[0].url.path == "/payments/subscribe"
    assert seen[0].headers["Idempotency-Key"] == "listing-fee-lst_1"
    assert json.loads(seen[0].content) == {
        "amount": 1500,
        "currency": "AED",
        "reference": "lst_1",
        "payment_token": "tok",
    }


async def test_declined_charge_raises():
    gateway = _gateway(402, {"error": "card_declined"}, [])
    with pytest.raises(UpstreamError) as exc:
        await gateway.charge(amount=1500, currency="AED", reference="lst_1", payment_token="tok")
    assert exc.value.code == "payment_failed"


async def test_unconfirmed_charge_raises():
    gateway = _gateway(200, {"payment_id": "pi_1", "status": "requires_action"}, [])
    with pytest.raises(UpstreamError) as exc:
        await gateway.charge(amount=1500, currency="AED", reference="lst_1", payment_token="tok")
    assert exc.value.code == "payment_unconfirmed"
