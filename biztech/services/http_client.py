from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

import httpx

log = logging.getLogger(__name__)

# Statuses worth another attempt later (mail only; payments are never retried)
RETRYABLE_STATUSES = frozenset({408, 425, 429, 500, 502, 503, 504})


@dataclass(frozen=True)
class HttpResult:
    ok: bool
    status_code: int | None
    body: dict[str, Any] = field(default_factory=dict)
    error_code: str | None = None
    error_message: str | None = None
    retryable: bool = False


def _parse_body(resp: httpx.Response, max_chars: int) -> dict[str, Any]:
    ctype = (resp.headers.get("content-type") or "").lower()
    if "json" in ctype:
        try:
            data = resp.json()
        except ValueError:
            data = None
        if isinstance(data, dict):
            return data
        if data is not None:
            return {"data": data}
    text = resp.text
    if len(text) > max_chars:
        text = f"{text[:max_chars]}...(truncated, {len(resp.text)} chars)"
    return {"raw": text}


class ServiceHttpClient:
    """
    One pooled AsyncClient per external collaborator (payment provider, mail provider).
    Transport failures and non-2xx answers come back as an ``HttpResult``; the caller
    decides whether that is an error, a retry or a permanent failure.
    """

    def __init__(
        self,
        *,
        base_url: str = "",
        timeout_seconds: float = 20.0,
        max_response_body_chars: int = 20_000,
        default_headers: Mapping[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._max_body = max_response_body_chars
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout_seconds),
            headers=dict(default_headers or {}),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def post_json(
        self,
        *,
        url: str,
        json_body: dict[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        request_id: str | None = None,
    ) -> HttpResult:
        h = dict(headers or {})
        if request_id:
            h.setdefault("X-Request-Id", request_id)

        try:
            resp = await self._client.post(url, json=json_body, headers=h)
        except httpx.TimeoutException as e:
            log.info("POST %s timed out: %s", url, e)
            return HttpResult(ok=False, status_code=None, error_code="TIMEOUT", error_message=str(e), retryable=True)
        except httpx.RequestError as e:
            # DNS, refused connection, TLS
            log.info("POST %s failed: %s", url, e)
            return HttpResult(ok=False, status_code=None, error_code="REQUEST_ERROR", error_message=str(e), retryable=True)

        body = _parse_body(resp, self._max_body)
        if resp.is_success:
            return HttpResult(ok=True, status_code=resp.status_code, body=body)
        return HttpResult(
            ok=False,
            status_code=resp.status_code,
            body=body,
            error_code=f"HTTP_{resp.status_code}",
            error_message=f"HTTP {resp.status_code}",
            retryable=resp.status_code in RETRYABLE_STATUSES,
        )
