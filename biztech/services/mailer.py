from __future__ import annotations

import logging
from dataclasses import dataclass

from biztech.core.config import settings
from biztech.services import outbox
from biztech.services.http_client import HttpResult, ServiceHttpClient

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    text: str


def build_message(event_type: str, payload: dict) -> EmailMessage | None:
    """Turn an account outbox event into the email the user should receive."""
    name = payload.get("name") or "there"
    to = payload["email"]

    if event_type == outbox.VERIFICATION_REQUESTED:
        return EmailMessage(
            to=to,
            subject="Your Biztech verification code",
            text=(
                f"Hi {name},\n\nYour verification code is {payload['code']}. "
                f"It expires in {settings.verification_code_ttl_minutes} minutes."
            ),
        )
    if event_type == outbox.PASSWORD_RESET_REQUESTED:
        link = f"{settings.frontend_url.rstrip('/')}/reset-password/{payload['reset_token']}"
        return EmailMessage(
            to=to,
            subject="Reset your Biztech password",
            text=(
                f"Hi {name},\n\nUse this link to choose a new password: {link}\n"
                f"The link expires in {settings.password_reset_ttl_minutes} minutes."
            ),
        )
    if event_type == outbox.AGENT_CREATED:
        return EmailMessage(
            to=to,
            subject="Your Biztech agent account",
            text=f"Hi {name},\n\nAn administrator created your agent account. Sign in at {settings.frontend_url}.",
        )
    return None


class Mailer:
    def __init__(self, client: ServiceHttpClient | None = None):
        self._client = client or ServiceHttpClient(
            base_url=settings.mailer_url,
            default_headers={"Authorization": f"Bearer {settings.mailer_api_key.get_secret_value()}"},
        )

    async def send(self, message: EmailMessage, *, request_id: str | None = None) -> HttpResult:
        res = await self._client.post_json(
            url="/messages",
            json_body={"to": message.to, "subject": message.subject, "text": message.text},
            request_id=request_id,
        )
        if not res.ok:
            log.warning("mailer: send failed to=%s code=%s retryable=%s", message.to, res.error_code, res.retryable)
        return res

    async def aclose(self) -> None:
        await self._client.aclose()
