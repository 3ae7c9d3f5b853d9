"""
Async client for the marketplace API.

The client owns an explicit ``Session`` held in a ``SessionStore``. A session is
created by ``login`` (or a buyer's ``verify_email``), destroyed by ``logout``,
and purged whenever any call comes back 401. It is never refreshed implicitly.
"""
from __future__ import annotations

import logging
from typing import Any

import httpx

from biztech.client.session import InMemorySessionStore, Session, SessionStore

log = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, status_code: int, code: str, message: str, details: list | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details or []


class SessionExpiredError(ApiError):
    """Raised on 401; the stored session has already been purged."""


class MarketplaceClient:
    def __init__(
        self,
        base_url: str,
        *,
        store: SessionStore | None = None,
        timeout_seconds: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.store = store if store is not None else InMemorySessionStore()
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout_seconds),
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "MarketplaceClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    @property
    def session(self) -> Session | None:
        return self.store.load()

    async def _call(
        self,
        method: str,
        path: str,
        *,
        json_body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        h = dict(headers or {})
        session = self.store.load()
        if session is not None:
            h["Authorization"] = f"Bearer {session.token}"
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        resp = await self._client.request(method, path, json=json_body, params=params, headers=h)
        if resp.is_success:
            return resp.json() if resp.content else None

        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        code = body.get("code") or f"http_{resp.status_code}"
        message = body.get("message") or f"HTTP {resp.status_code}"
        details = body.get("details") or []

        if resp.status_code == 401:
            self.store.clear()
            log.info("session purged after 401 on %s %s", method, path)
            raise SessionExpiredError(resp.status_code, code, message, details)
        raise ApiError(resp.status_code, code, message, details)

    # auth

    async def register(self, payload: dict[str, Any]) -> dict:
        return await self._call("POST", "/auth/register", json_body=payload)

    async def verify_email(self, email: str, otp: str) -> dict:
        data = await self._call("POST", "/auth/verify-email", json_body={"email": email, "otp": otp})
        if data.get("token"):
            self.store.save(Session(token=data["token"], account=data.get("account") or {}))
        return data

    async def resend_verification(self, email: str) -> dict:
        return await self._call("POST", "/auth/resend-verification", json_body={"email": email})

    async def login(self, email: str, password: str) -> Session:
        data = await self._call("POST", "/auth/login", json_body={"email": email, "password": password})
        session = Session(token=data["token"], account=data.get("account") or {})
        self.store.save(session)
        return session

    async def logout(self) -> None:
        try:
            if self.store.load() is not None:
                await self._call("POST", "/auth/logout")
        finally:
            self.store.clear()

    async def forgot_password(self, email: str) -> dict:
        return await self._call("POST", "/auth/forgot-password", json_body={"email": email})

    async def reset_password(self, token: str, password: str) -> dict:
        return await self._call("PUT", f"/auth/reset-password/{token}", json_body={"password": password})

    async def me(self) -> dict:
        return await self._call("GET", "/me")

    async def update_profile(self, **changes: Any) -> dict:
        return await self._call("PATCH", "/me", json_body=changes)

    # listings

    async def search_listings(self, **filters: Any) -> list[dict]:
        return await self._call("GET", "/listings", params=filters)

    async def get_listing(self, listing_id: str) -> dict:
        return await self._call("GET", f"/listings/{listing_id}")

    async def create_listing(self, payload: dict[str, Any], *, idempotency_key: str | None = None) -> dict:
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None
        return await self._call("POST", "/listings", json_body=payload, headers=headers)

    async def update_listing(self, listing_id: str, changes: dict[str, Any]) -> dict:
        return await self._call("PUT", f"/listings/{listing_id}", json_body=changes)

    async def delete_listing(self, listing_id: str) -> dict:
        return await self._call("DELETE", f"/listings/{listing_id}")

    async def my_listings(self) -> list[dict]:
        return await self._call("GET", "/seller/listings")

    # leads

    async def create_lead(self, listing_id: str, message: str) -> dict:
        return await self._call("POST", "/leads", json_body={"listing_id": listing_id, "message": message})

    async def my_enquiries(self) -> list[dict]:
        return await self._call("GET", "/buyer/enquiries")

    # agent

    async def assigned_listings(self) -> list[dict]:
        return await self._call("GET", "/agent/listings")

    async def set_deliverable(self, listing_id: str, field: str, value: bool) -> dict:
        return await self._call(
            "PUT", f"/agent/listings/{listing_id}/deliverables", json_body={"field": field, "value": value}
        )

    async def agent_leads(self) -> list[dict]:
        return await self._call("GET", "/agent/leads")

    async def update_lead_status(self, lead_id: str, status: str) -> dict:
        return await self._call("PUT", f"/agent/leads/{lead_id}", json_body={"status": status})

    # admin

    async def admin_stats(self) -> dict:
        return await self._call("GET", "/admin/stats")

    async def list_users(self, *, role: str | None = None, status: str | None = None) -> list[dict]:
        return await self._call("GET", "/admin/users", params={"role": role, "status": status})

    async def pending_users(self) -> list[dict]:
        return await self._call("GET", "/admin/pending-users")

    async def list_agents(self) -> list[dict]:
        return await self._call("GET", "/admin/agents")

    async def pending_listings(self) -> list[dict]:
        return await self._call("GET", "/admin/pending-listings")

    async def set_user_status(self, user_id: str, status: str) -> dict:
        return await self._call("PUT", f"/admin/users/{user_id}/status", json_body={"status": status})

    async def assign_agent(self, listing_id: str, agent_id: str) -> dict:
        return await self._call("POST", "/admin/assign-agent", json_body={"listing_id": listing_id, "agent_id": agent_id})

    async def reject_listing(self, listing_id: str) -> dict:
        return await self._call("POST", f"/admin/listings/{listing_id}/reject")

    async def create_agent(self, payload: dict[str, Any]) -> dict:
        return await self._call("POST", "/admin/create-agent", json_body=payload)
