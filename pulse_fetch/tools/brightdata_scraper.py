from __future__ import annotations

import asyncio

import httpx

from pulse_fetch.config import settings
from pulse_fetch.models.scrape import BackendOutcome
from pulse_fetch.tools.web_utils import media_type, timeout_seconds


class BrightDataScraper:
    """BrightData Web Unlocker client.

    API: POST {base_url}/request
    Body: {"zone": <zone>, "url": <url>, "format": "raw"}
    The unlocked page is returned as the raw response body.
    """

    def __init__(
        self,
        api_key: str,
        *,
        zone: str | None = None,
        base_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key.strip()
        self.zone = zone or settings.brightdata_zone
        self.base_url = (base_url or settings.brightdata_base_url).rstrip("/")
        self._http_client = http_client

    async def scrape(self, url: str, *, timeout_ms: int | None = None) -> BackendOutcome:
        deadline = timeout_seconds(timeout_ms, settings.default_timeout_ms)
        request_body = {"zone": self.zone, "url": url, "format": "raw"}

        async def _do_request(client: httpx.AsyncClient) -> httpx.Response:
            return await client.post(
                f"{self.base_url}/request",
                json=request_body,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                timeout=deadline,
            )

        async def _fetch() -> httpx.Response:
            if self._http_client is None:
                async with httpx.AsyncClient() as client:
                    return await _do_request(client)
            return await _do_request(self._http_client)

        try:
            response = await asyncio.wait_for(_fetch(), deadline)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            return BackendOutcome(success=False, error="BrightData request timed out")
        except httpx.HTTPError as exc:
            return BackendOutcome(success=False, error=f"BrightData request failed: {exc}")

        body = response.text
        if not response.is_success:
            detail = body.strip()[:200]
            return BackendOutcome(
                success=False,
                status_code=response.status_code,
                error=f"HTTP {response.status_code}: {detail}" if detail else f"HTTP {response.status_code}",
            )
        if not body.strip():
            return BackendOutcome(
                success=False,
                status_code=response.status_code,
                error="BrightData returned empty body",
            )
        return BackendOutcome(
            success=True,
            content=body,
            status_code=response.status_code,
            content_type=media_type(response.headers.get("content-type")),
        )
