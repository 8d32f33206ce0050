from __future__ import annotations

import asyncio
from typing import Any

import httpx

from pulse_fetch.config import settings
from pulse_fetch.models.scrape import BackendOutcome
from pulse_fetch.tools.web_utils import timeout_seconds


def _extract_html(payload: Any) -> str:
    if not isinstance(payload, dict):
        return ""
    body = payload.get("data")
    if not isinstance(body, dict):
        return ""
    return str(body.get("html") or body.get("rawHtml") or "")


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get("error"):
        return f"HTTP {response.status_code}: {payload['error']}"
    return f"HTTP {response.status_code}"


class FirecrawlScraper:
    """Firecrawl scrape API client.

    API: POST {base_url}/v1/scrape
    Body: {"url": <url>, "formats": ["html"]}
    Success requires ``success: true`` and non-empty ``data.html``.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key.strip()
        self.base_url = (base_url or settings.firecrawl_base_url).rstrip("/")
        self._http_client = http_client

    async def scrape(self, url: str, *, timeout_ms: int | None = None) -> BackendOutcome:
        deadline = timeout_seconds(timeout_ms, settings.default_timeout_ms)
        endpoint = f"{self.base_url}/v1/scrape"
        request_body: dict[str, Any] = {"url": url, "formats": ["html"]}
        if timeout_ms:
            request_body["timeout"] = int(timeout_ms)

        async def _do_request(client: httpx.AsyncClient) -> httpx.Response:
            return await client.post(
                endpoint,
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
            return BackendOutcome(success=False, error="Firecrawl request timed out")
        except httpx.HTTPError as exc:
            return BackendOutcome(success=False, error=f"Firecrawl request failed: {exc}")

        if not response.is_success:
            return BackendOutcome(
                success=False,
                status_code=response.status_code,
                error=_error_message(response),
            )

        try:
            payload = response.json()
        except ValueError:
            return BackendOutcome(
                success=False,
                status_code=response.status_code,
                error="Firecrawl returned a non-JSON response",
            )

        if not isinstance(payload, dict) or not payload.get("success"):
            error = payload.get("error") if isinstance(payload, dict) else None
            return BackendOutcome(
                success=False,
                status_code=response.status_code,
                error=str(error or "Firecrawl reported failure"),
            )

        html = _extract_html(payload)
        if not html:
            return BackendOutcome(
                success=False,
                status_code=response.status_code,
                error="Firecrawl response missing html content",
            )
        return BackendOutcome(
            success=True,
            content=html,
            status_code=response.status_code,
            content_type="text/html",
        )
