"""Junction (Vital) aggregation API client.

Junction brokers OAuth with each wearable provider and exposes per-category
daily summaries for a Junction user.  This client implements the
``ProviderGateway`` interface on top of its REST API and provides the remote
half of device linking (user creation, link tokens).

Environment variables (see ``biotrend.config.Settings``):
    JUNCTION_API_KEY   — API key sent as ``x-vital-api-key``
    JUNCTION_REGION    — 'us' or 'eu'
    JUNCTION_ENV       — 'sandbox' or 'production'
    JUNCTION_BASE_URL  — explicit base URL (overrides region/env)

Endpoints used:
    GET    /v2/summary/{sleep|activity|body|workouts}/{user_id}
    GET    /v2/user/providers/{user_id}
    DELETE /v2/user/{user_id}/{provider}
    POST   /v2/user
    GET    /v2/user/resolve/{client_user_id}
    POST   /v2/link/token
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import date
from typing import Any

import httpx

from biotrend.config import Settings, get_settings
from biotrend.wearables.base import (
    Category,
    LinkProvider,
    LinkToken,
    ProviderConnection,
    ProviderGateway,
)
from biotrend.wearables.errors import GatewayError

logger = logging.getLogger("biotrend.wearables.gateway.junction")

_BASE_URLS: dict[tuple[str, str], str] = {
    ("production", "us"): "https://api.tryvital.io",
    ("production", "eu"): "https://api.eu.tryvital.io",
    ("sandbox", "us"): "https://api.sandbox.tryvital.io",
    ("sandbox", "eu"): "https://api.sandbox.eu.tryvital.io",
}

# Category → (URL segment, response collection key)
_SUMMARY_PATHS: dict[Category, tuple[str, str]] = {
    Category.SLEEP: ("sleep", "sleep"),
    Category.ACTIVITY: ("activity", "activity"),
    Category.BODY: ("body", "body"),
    Category.WORKOUT: ("workouts", "workouts"),
}


def resolve_base_url(environment: str, region: str) -> str:
    """Return the API base URL for an environment/region pair."""
    env = "production" if environment == "production" else "sandbox"
    reg = "eu" if region == "eu" else "us"
    return _BASE_URLS[(env, reg)]


class JunctionClient(ProviderGateway):
    """Async client for the Junction REST API.

    Args:
        api_key:     API key (JUNCTION_API_KEY).
        base_url:    Explicit base URL; derived from region/env when empty.
        http_client: Optional pre-configured httpx client (for testing).
        settings:    Settings override (``get_settings()`` if None).
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
    ) -> None:
        s = settings or get_settings()
        self._api_key = api_key or s.junction_api_key
        self._base_url = (
            base_url
            or s.junction_base_url
            or resolve_base_url(s.junction_env, s.junction_region)
        ).rstrip("/")
        self._timeout = s.http_timeout_seconds
        self._http_client = http_client

    @property
    def base_url(self) -> str:
        return self._base_url

    # ------------------------------------------------------------------
    # ProviderGateway interface
    # ------------------------------------------------------------------

    async def fetch_category(
        self,
        remote_user_id: str,
        category: Category,
        start_date: date,
        end_date: date,
    ) -> list[dict]:
        """Fetch one category's daily summaries for a date window."""
        segment, key = _SUMMARY_PATHS[Category(category)]
        data = await self._request(
            "GET",
            f"/v2/summary/{segment}/{remote_user_id}",
            params={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
        )
        records = data.get(key) if isinstance(data, dict) else None
        return list(records or [])

    async def connected_providers(self, remote_user_id: str) -> list[ProviderConnection]:
        """List providers linked to a Junction user.

        Handles both the flat ``{"providers": [...]}`` shape and a mapping of
        slug → list of provider entries.
        """
        data = await self._request("GET", f"/v2/user/providers/{remote_user_id}")

        entries: list[dict] = []
        if isinstance(data, dict) and isinstance(data.get("providers"), list):
            entries = [p for p in data["providers"] if isinstance(p, dict)]
        elif isinstance(data, dict):
            for slug, items in data.items():
                for item in items or []:
                    if isinstance(item, dict):
                        entries.append({**item, "slug": item.get("slug") or slug})

        return [
            ProviderConnection(
                slug=entry.get("slug", ""),
                name=entry.get("name"),
                status=entry.get("status", "connected"),
                connected_at=entry.get("created_on") or entry.get("connected_at"),
                last_sync_at=entry.get("last_sync_at") or entry.get("updated_at"),
            )
            for entry in entries
            if entry.get("slug")
        ]

    async def deregister_provider(self, remote_user_id: str, provider: str) -> None:
        await self._request("DELETE", f"/v2/user/{remote_user_id}/{provider}")
        logger.info("Disconnected provider %s for %s", provider, remote_user_id)

    # ------------------------------------------------------------------
    # Linking
    # ------------------------------------------------------------------

    async def create_user(self, client_user_id: str) -> str:
        """Create a Junction user for a local user, resolving it if it already exists."""
        try:
            data = await self._request(
                "POST", "/v2/user", json={"client_user_id": client_user_id}
            )
        except GatewayError as exc:
            if "already exists" not in str(exc):
                raise
            logger.info("Junction user already exists for %s, resolving", client_user_id)
            data = await self._request("GET", f"/v2/user/resolve/{client_user_id}")

        user_id = data.get("user_id") if isinstance(data, dict) else None
        if not user_id:
            raise GatewayError(f"Junction returned no user_id for {client_user_id}")
        logger.info("Created Junction user %s for %s", user_id, client_user_id)
        return user_id

    async def link_token(self, remote_user_id: str) -> LinkToken:
        data = await self._request("POST", "/v2/link/token", json={"user_id": remote_user_id})
        if not isinstance(data, dict) or not data.get("link_token"):
            raise GatewayError("Junction returned no link_token")
        return LinkToken(
            link_token=data["link_token"],
            link_web_url=data.get("link_web_url") or "",
        )

    # ------------------------------------------------------------------
    # Private HTTP helper
    # ------------------------------------------------------------------

    def _build_headers(self) -> dict[str, str]:
        if not self._api_key:
            raise GatewayError("JUNCTION_API_KEY is not configured")
        return {"x-vital-api-key": self._api_key, "Accept": "application/json"}

    async def _request(
        self,
        method: str,
        path: str,
        params: dict | None = None,
        json: dict | None = None,
    ) -> Any:
        """Make an authenticated request and return the decoded JSON body.

        Raises:
            GatewayError: On transport errors, non-2xx responses and undecodable bodies.
        """
        headers = self._build_headers()
        url = f"{self._base_url}{path}"

        try:
            if self._http_client:
                response = await self._http_client.request(
                    method, url, params=params, json=json, headers=headers
                )
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.request(
                        method, url, params=params, json=json, headers=headers
                    )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            detail = exc.response.text if exc.response is not None else ""
            logger.error("Junction %s %s failed: %s %s", method, path, exc, detail)
            raise GatewayError(
                f"Junction {method} {path} returned {exc.response.status_code}: {detail}"
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("Junction %s %s failed: %s", method, path, exc)
            raise GatewayError(f"Junction {method} {path} failed: {exc}") from exc

        if response.status_code == 204 or not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            logger.error("Junction %s %s returned a non-JSON body: %s", method, path, exc)
            raise GatewayError(f"Junction {method} {path} returned invalid JSON") from exc


class IdentityStore(ABC):
    """Keyed storage of local user id → remote identity."""

    @abstractmethod
    async def get(self, local_user_id: str) -> str | None:
        """Return the stored remote id, or None when the user was never linked."""

    @abstractmethod
    async def set(self, local_user_id: str, remote_user_id: str) -> None:
        """Persist the remote id for a local user, replacing any previous one."""


class InMemoryIdentityStore(IdentityStore):
    """Process-local identity store (tests and single-user deployments)."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._ids: dict[str, str] = dict(initial or {})

    async def get(self, local_user_id: str) -> str | None:
        return self._ids.get(local_user_id)

    async def set(self, local_user_id: str, remote_user_id: str) -> None:
        self._ids[local_user_id] = remote_user_id

    def __len__(self) -> int:
        return len(self._ids)


class JunctionLinkProvider(LinkProvider):
    """LinkProvider backed by a JunctionClient and an IdentityStore."""

    def __init__(self, client: JunctionClient, store: IdentityStore) -> None:
        self._client = client
        self._store = store

    async def get_remote_user_id(self, local_user_id: str) -> str | None:
        return await self._store.get(local_user_id)

    async def create_remote_user(self, local_user_id: str) -> str:
        remote_user_id = await self._client.create_user(local_user_id)
        await self._store.set(local_user_id, remote_user_id)
        return remote_user_id

    async def generate_link_token(self, remote_user_id: str) -> LinkToken:
        return await self._client.link_token(remote_user_id)
