"""
AdSense Management API check for publisher ids.
"""

from __future__ import annotations

import httpx
import structlog

from app.core.errors import AdapterError

log = structlog.get_logger()

PROVIDER = "adsense"


class AdSenseAdapter:
    """RevenueAdapter that confirms the publisher account exists and is readable."""

    def __init__(self, client: httpx.AsyncClient, *, api_url: str, access_token: str):
        self._client = client
        self._api_url = api_url.rstrip("/")
        self._access_token = access_token

    async def verify_publisher_id(self, publisher_id: str) -> None:
        if not self._access_token:
            raise AdapterError(PROVIDER, "AdSense access token is not configured")

        url = f"{self._api_url}/accounts/{publisher_id}"
        try:
            resp = await self._client.get(
                url, headers={"Authorization": f"Bearer {self._access_token}"}
            )
        except httpx.HTTPError as exc:
            raise AdapterError(PROVIDER, f"Request failed: {exc}") from exc

        if resp.status_code == 404:
            raise AdapterError(PROVIDER, f"Publisher account '{publisher_id}' does not exist")
        if resp.status_code in (401, 403):
            raise AdapterError(PROVIDER, f"Not authorized to read publisher account '{publisher_id}'")
        if resp.status_code >= 300:
            raise AdapterError(PROVIDER, f"Account lookup failed with HTTP {resp.status_code}")
        log.info("adsense.publisher_verified", publisher_id=publisher_id)
