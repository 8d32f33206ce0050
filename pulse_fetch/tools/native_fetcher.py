from __future__ import annotations

import asyncio

import httpx

from pulse_fetch.config import settings
from pulse_fetch.models.scrape import BackendOutcome
from pulse_fetch.tools.pdf_parser import PDF_MEDIA_TYPE, parse_pdf
from pulse_fetch.tools.web_utils import media_type, timeout_seconds

TIMEOUT_MESSAGE = (
    "Request timed out. The server did not respond within the timeout period. "
    "Consider increasing the timeout if this URL typically takes longer to load."
)


class NativeFetcher:
    """Plain HTTP GET of the target page. PDF responses are converted to text."""

    def __init__(
        self,
        *,
        user_agent: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.user_agent = user_agent or settings.native_user_agent
        self._http_client = http_client

    async def scrape(self, url: str, *, timeout_ms: int | None = None) -> BackendOutcome:
        timeout = timeout_seconds(timeout_ms, settings.default_timeout_ms)

        async def _do_request(client: httpx.AsyncClient) -> httpx.Response:
            return await client.get(
                url,
                headers={"User-Agent": self.user_agent},
                timeout=timeout,
                follow_redirects=True,
            )

        async def _fetch() -> httpx.Response:
            if self._http_client is None:
                async with httpx.AsyncClient() as client:
                    return await _do_request(client)
            return await _do_request(self._http_client)

        # httpx timeouts apply per phase; wait_for bounds the whole call
        try:
            response = await asyncio.wait_for(_fetch(), timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            return BackendOutcome(success=False, error=TIMEOUT_MESSAGE)
        except httpx.HTTPError as exc:
            return BackendOutcome(success=False, error=str(exc) or type(exc).__name__)

        content_type = media_type(response.headers.get("content-type"))
        if not response.is_success:
            return BackendOutcome(
                success=False,
                content=response.text or None,
                status_code=response.status_code,
                error=f"HTTP {response.status_code}",
                content_type=content_type,
            )

        if content_type == PDF_MEDIA_TYPE:
            return await self._parse_pdf(response)

        body = response.text
        if not body.strip():
            return BackendOutcome(
                success=False,
                status_code=response.status_code,
                error="Empty response body",
                content_type=content_type,
            )
        return BackendOutcome(
            success=True,
            content=body,
            status_code=response.status_code,
            content_type=content_type,
        )

    async def _parse_pdf(self, response: httpx.Response) -> BackendOutcome:
        try:
            parsed = await asyncio.to_thread(parse_pdf, response.content)
        except ValueError as exc:
            return BackendOutcome(
                success=False,
                status_code=response.status_code,
                error=str(exc),
                content_type=PDF_MEDIA_TYPE,
            )
        if not parsed.text:
            return BackendOutcome(
                success=False,
                status_code=response.status_code,
                error="PDF contains no extractable text",
                content_type=PDF_MEDIA_TYPE,
            )
        return BackendOutcome(
            success=True,
            content=parsed.text,
            status_code=response.status_code,
            content_type=PDF_MEDIA_TYPE,
        )
