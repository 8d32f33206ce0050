from __future__ import annotations

import httpx
import pytest

from pulse_fetch.config import Settings
from pulse_fetch.tools.healthcheck import (
    check_brightdata_auth,
    check_firecrawl_auth,
    run_health_checks,
)


def responding(status: int) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(status)))


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status, success, error",
    [
        (400, True, None),
        (401, False, "Invalid API key - authentication failed"),
        (500, False, "Unexpected response: 500"),
    ],
)
async def test_firecrawl_status_mapping(status, success, error):
    async with responding(status) as client:
        result = await check_firecrawl_auth("key", http_client=client)

    assert result.service == "Firecrawl"
    assert result.success is success
    assert result.error == error


@pytest.mark.asyncio
@pytest.mark.parametrize("status, success", [(200, True), (204, True), (400, True), (401, False), (403, False)])
async def test_brightdata_status_mapping(status, success):
    async with responding(status) as client:
        result = await check_brightdata_auth("key", http_client=client)

    assert result.service == "BrightData"
    assert result.success is success


@pytest.mark.asyncio
async def test_timeout_and_connection_errors():
    def timeout(request):
        raise httpx.ConnectTimeout("slow", request=request)

    def refused(request):
        raise httpx.ConnectError("refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(timeout)) as client:
        timed_out = await check_firecrawl_auth("key", http_client=client)
    async with httpx.AsyncClient(transport=httpx.MockTransport(refused)) as client:
        failed = await check_firecrawl_auth("key", http_client=client)

    assert timed_out.error == "Request timeout"
    assert failed.error == "Connection error: refused"


@pytest.mark.asyncio
async def test_run_health_checks_only_checks_configured_backends():
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.host)
        return httpx.Response(400)

    config = Settings(_env_file=None, brightdata_api_key="bd", brightdata_base_url="https://bd.test")
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        results = await run_health_checks(config, http_client=client)

    assert [r.service for r in results] == ["BrightData"]
    assert seen == ["bd.test"]


@pytest.mark.asyncio
async def test_run_health_checks_with_nothing_configured():
    assert await run_health_checks(Settings(_env_file=None)) == []
