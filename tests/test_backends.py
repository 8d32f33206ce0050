from __future__ import annotations

import asyncio
import json
import time
from contextlib import asynccontextmanager

import httpx
import pytest

from conftest import make_pdf
from pulse_fetch.config import Settings
from pulse_fetch.models.scrape import StrategyId
from pulse_fetch.scraping.clients import ScrapingClients, build_scraping_clients
from pulse_fetch.tools.brightdata_scraper import BrightDataScraper
from pulse_fetch.tools.firecrawl_scraper import FirecrawlScraper
from pulse_fetch.tools.native_fetcher import TIMEOUT_MESSAGE, NativeFetcher

URL = "https://example.com/page"


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@asynccontextmanager
async def slow_drip_server(interval: float = 0.3, chunks: int = 10):
    """Local HTTP server that sends a chunked 200 one byte at a time."""

    async def handle(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        try:
            await reader.readuntil(b"\r\n\r\n")
            writer.write(
                b"HTTP/1.1 200 OK\r\nContent-Type: text/html\r\nTransfer-Encoding: chunked\r\n\r\n"
            )
            for _ in range(chunks):
                if writer.is_closing():
                    break
                writer.write(b"1\r\na\r\n")
                await writer.drain()
                await asyncio.sleep(interval)
        except (ConnectionResetError, BrokenPipeError, asyncio.IncompleteReadError):
            pass
        finally:
            writer.close()

    server = await asyncio.start_server(handle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    try:
        yield f"http://127.0.0.1:{port}"
    finally:
        server.close()


# --- native ---


@pytest.mark.asyncio
async def test_native_returns_body_on_2xx():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text="<html><body>hello</body></html>")

    async with mock_client(handler) as client:
        outcome = await NativeFetcher(user_agent="test-agent", http_client=client).scrape(URL)

    assert outcome.success is True
    assert outcome.content == "<html><body>hello</body></html>"
    assert outcome.status_code == 200
    assert seen[0].method == "GET"
    assert seen[0].headers["User-Agent"] == "test-agent"


@pytest.mark.asyncio
async def test_native_non_2xx_is_failure_with_status():
    async with mock_client(lambda request: httpx.Response(403, text="denied")) as client:
        outcome = await NativeFetcher(http_client=client).scrape(URL)

    assert outcome.success is False
    assert outcome.status_code == 403
    assert outcome.error == "HTTP 403"


@pytest.mark.asyncio
async def test_native_empty_body_is_failure():
    async with mock_client(lambda request: httpx.Response(200, text="   ")) as client:
        outcome = await NativeFetcher(http_client=client).scrape(URL)

    assert outcome.success is False
    assert outcome.error == "Empty response body"


@pytest.mark.asyncio
async def test_native_timeout_has_fixed_message():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    async with mock_client(handler) as client:
        outcome = await NativeFetcher(http_client=client).scrape(URL, timeout_ms=10)

    assert outcome.success is False
    assert outcome.error == TIMEOUT_MESSAGE
    assert outcome.status_code is None


@pytest.mark.asyncio
async def test_native_timeout_bounds_the_whole_call():
    async with slow_drip_server() as base_url:
        started = time.monotonic()
        outcome = await NativeFetcher().scrape(f"{base_url}/slow", timeout_ms=1000)
        elapsed = time.monotonic() - started

    assert elapsed < 2.0
    assert outcome.success is False
    assert outcome.error == TIMEOUT_MESSAGE


@pytest.mark.asyncio
async def test_native_pdf_is_converted_to_text():
    pdf = make_pdf("Hello PDF")

    async with mock_client(
        lambda request: httpx.Response(200, content=pdf, headers={"Content-Type": "application/pdf"})
    ) as client:
        outcome = await NativeFetcher(http_client=client).scrape(URL)

    assert outcome.success is True
    assert "Hello PDF" in outcome.content
    assert outcome.content_type == "application/pdf"


@pytest.mark.asyncio
async def test_native_unreadable_pdf_is_failure():
    async with mock_client(
        lambda request: httpx.Response(
            200, content=b"garbage", headers={"Content-Type": "application/pdf; charset=binary"}
        )
    ) as client:
        outcome = await NativeFetcher(http_client=client).scrape(URL)

    assert outcome.success is False
    assert outcome.error.startswith("Failed to parse PDF")


@pytest.mark.asyncio
async def test_native_records_media_type_without_parameters():
    async with mock_client(
        lambda request: httpx.Response(
            200, text="<p>hi</p>", headers={"Content-Type": "Text/HTML; charset=utf-8"}
        )
    ) as client:
        outcome = await NativeFetcher(http_client=client).scrape(URL)

    assert outcome.content_type == "text/html"


@pytest.mark.asyncio
async def test_native_connection_error_is_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with mock_client(handler) as client:
        outcome = await NativeFetcher(http_client=client).scrape(URL)

    assert outcome.success is False
    assert "connection refused" in outcome.error


# --- firecrawl ---


@pytest.mark.asyncio
async def test_firecrawl_posts_url_and_returns_html():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"success": True, "data": {"html": "<p>fc</p>"}})

    async with mock_client(handler) as client:
        scraper = FirecrawlScraper("fc-key", base_url="https://fc.test/", http_client=client)
        outcome = await scraper.scrape(URL, timeout_ms=5000)

    assert outcome.success is True
    assert outcome.content == "<p>fc</p>"
    request = seen[0]
    assert str(request.url) == "https://fc.test/v1/scrape"
    assert request.headers["Authorization"] == "Bearer fc-key"
    assert json.loads(request.content) == {"url": URL, "formats": ["html"], "timeout": 5000}


@pytest.mark.asyncio
async def test_firecrawl_success_false_is_failure():
    async with mock_client(
        lambda request: httpx.Response(200, json={"success": False, "error": "Page blocked"})
    ) as client:
        outcome = await FirecrawlScraper("k", http_client=client).scrape(URL)

    assert outcome.success is False
    assert outcome.error == "Page blocked"


@pytest.mark.asyncio
async def test_firecrawl_missing_html_is_failure():
    async with mock_client(
        lambda request: httpx.Response(200, json={"success": True, "data": {"markdown": "# hi"}})
    ) as client:
        outcome = await FirecrawlScraper("k", http_client=client).scrape(URL)

    assert outcome.success is False
    assert outcome.error == "Firecrawl response missing html content"


@pytest.mark.asyncio
async def test_firecrawl_unauthorized_keeps_status_and_error():
    async with mock_client(
        lambda request: httpx.Response(401, json={"success": False, "error": "Unauthorized"})
    ) as client:
        outcome = await FirecrawlScraper("bad", http_client=client).scrape(URL)

    assert outcome.success is False
    assert outcome.status_code == 401
    assert outcome.error == "HTTP 401: Unauthorized"


@pytest.mark.asyncio
async def test_firecrawl_non_json_body_is_failure():
    async with mock_client(lambda request: httpx.Response(200, text="<html>gateway</html>")) as client:
        outcome = await FirecrawlScraper("k", http_client=client).scrape(URL)

    assert outcome.success is False
    assert "non-JSON" in outcome.error


# --- brightdata ---


@pytest.mark.asyncio
async def test_brightdata_posts_zone_and_returns_raw_body():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text="<html>unlocked</html>")

    async with mock_client(handler) as client:
        scraper = BrightDataScraper("bd-key", zone="zone1", base_url="https://bd.test", http_client=client)
        outcome = await scraper.scrape(URL)

    assert outcome.success is True
    assert outcome.content == "<html>unlocked</html>"
    assert str(seen[0].url) == "https://bd.test/request"
    assert json.loads(seen[0].content) == {"zone": "zone1", "url": URL, "format": "raw"}


@pytest.mark.asyncio
async def test_brightdata_error_includes_body_detail():
    async with mock_client(lambda request: httpx.Response(502, text="upstream unavailable")) as client:
        outcome = await BrightDataScraper("k", http_client=client).scrape(URL)

    assert outcome.success is False
    assert outcome.status_code == 502
    assert outcome.error == "HTTP 502: upstream unavailable"


@pytest.mark.asyncio
async def test_brightdata_empty_body_is_failure():
    async with mock_client(lambda request: httpx.Response(200, text="")) as client:
        outcome = await BrightDataScraper("k", http_client=client).scrape(URL)

    assert outcome.success is False
    assert outcome.error == "BrightData returned empty body"


@pytest.mark.asyncio
async def test_brightdata_timeout_bounds_the_whole_call():
    async with slow_drip_server() as base_url:
        started = time.monotonic()
        outcome = await BrightDataScraper("k", base_url=base_url).scrape(URL, timeout_ms=1000)
        elapsed = time.monotonic() - started

    assert elapsed < 2.0
    assert outcome.success is False
    assert outcome.error == "BrightData request timed out"


# --- registry ---


def test_registry_only_includes_managed_backends_with_keys():
    clients = build_scraping_clients(Settings(_env_file=None, firecrawl_api_key="fc-key"))

    assert clients.configured() == [StrategyId.NATIVE, StrategyId.FIRECRAWL]
    assert isinstance(clients.get(StrategyId.FIRECRAWL), FirecrawlScraper)
    assert clients.get(StrategyId.BRIGHTDATA) is None
    assert isinstance(clients.native, NativeFetcher)


def test_registry_ignores_blank_keys():
    clients = build_scraping_clients(
        Settings(_env_file=None, firecrawl_api_key="   ", brightdata_api_key="bd-key")
    )

    assert clients.configured() == [StrategyId.NATIVE, StrategyId.BRIGHTDATA]


def test_registry_rejects_native_as_managed():
    with pytest.raises(ValueError):
        ScrapingClients(native=NativeFetcher(), managed={StrategyId.NATIVE: NativeFetcher()})
