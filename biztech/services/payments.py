from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from biztech.core.config import settings
from biztech.core.errors import UpstreamError
from biztech.services.http_client import ServiceHttpClient

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentConfirmation:
    reference: str
    amount: float
    currency: str


class PaymentGateway(Protocol):
    async def charge(self, *, amount: float, currency: str, reference: str, payment_token: str) -> PaymentConfirmation:
        """Capture a payment or raise UpstreamError."""
        ...


class HttpPaymentGateway:
    """Talks to the payment provider's JSON API. Payments are never retried automatically."""

    def __init__(self, client: ServiceHttpClient | None = None):
        self._client = client or ServiceHttpClient(
            base_url=settings.payment_provider_url,
            timeout_seconds=15.0,
            default_headers={"Authorization": f"Bearer {settings.payment_api_key.get_secret_value()}"},
        )

    async def charge(self, *, amount: float, currency: str, reference: str, payment_token: str) -> PaymentConfirmation:
        res = await self._client.post_json(
            url="/payments/subscribe",
            json_body={
                "amount": amount,
                "currency": currency,
                "reference": reference,
                "payment_token": payment_token,
            },
            headers={"Idempotency-Key": f"listing-fee-{reference}"},
            request_id=reference,
        )
        if not res.ok:
            log.warning("payment declined or failed: ref=%s code=%s", reference, res.error_code)
            raise UpstreamError(
                "Payment could not be completed",
                code="payment_failed",
                details=[{"provider_status": res.status_code, "error_code": res.error_code}],
            )

        confirmation = str(res.body.get("payment_id") or res.body.get("id") or "")
        if not confirmation or res.body.get("status") not in (None, "succeeded", "paid"):
            raise UpstreamError("Payment was not confirmed", code="payment_unconfirmed")

        return PaymentConfirmation(reference=confirmation, amount=amount, currency=currency)


_gateway: PaymentGateway | None = None


def get_payment_gateway() -> PaymentGateway:
    global _gateway
    if _gateway is None:
        _gateway = HttpPaymentGateway()
    return _gateway
