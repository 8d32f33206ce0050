from __future__ import annotations

from dataclasses import dataclass

import httpx

from pulse_fetch.config import Settings, settings as default_settings

HEALTHCHECK_TIMEOUT_SECONDS = 5.0


@dataclass
class HealthCheckResult:
    service: str
    success: bool
    error: str | None = None


async def _check_key(
    service: str,
    endpoint: str,
    api_key: str,
    *,
    accepted: set[int],
    http_client: httpx.AsyncClient | None = None,
) -> HealthCheckResult:
    """POST an empty body: auth is checked before validation, so no credits are spent."""

    async def _do_request(client: httpx.AsyncClient) -> httpx.Response:
        return await client.post(
            endpoint,
            json={},
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=HEALTHCHECK_TIMEOUT_SECONDS,
        )

    try:
        if http_client is None:
            async with httpx.AsyncClient() as client:
                response = await _do_request(client)
        else:
            response = await _do_request(http_client)
    except httpx.TimeoutException:
        return HealthCheckResult(service=service, success=False, error="Request timeout")
    except httpx.HTTPError as exc:
        return HealthCheckResult(service=service, success=False, error=f"Connection error: {exc}")

    if response.status_code == 401:
        return HealthCheckResult(
            service=service,
            success=False,
            error="Invalid API key - authentication failed",
        )
    if response.status_code in accepted or (200 <= response.status_code < 300 and 200 in accepted):
        return HealthCheckResult(service=service, success=True)
    return HealthCheckResult(
        service=service,
        success=False,
        error=f"Unexpected response: {response.status_code}",
    )


async def check_firecrawl_auth(
    api_key: str,
    *,
    base_url: str = "https://api.firecrawl.dev",
    http_client: httpx.AsyncClient | None = None,
) -> HealthCheckResult:
    # 400 = key accepted, request rejected for the missing URL
    return await _check_key(
        "Firecrawl",
        f"{base_url.rstrip('/')}/v1/scrape",
        api_key,
        accepted={400},
        http_client=http_client,
    )


async def check_brightdata_auth(
    api_key: str,
    *,
    base_url: str = "https://api.brightdata.com",
    http_client: httpx.AsyncClient | None = None,
) -> HealthCheckResult:
    # 400 = key accepted, request rejected for the missing zone/url
    return await _check_key(
        "BrightData",
        f"{base_url.rstrip('/')}/request",
        api_key,
        accepted={200, 400},
        http_client=http_client,
    )


async def run_health_checks(
    config: Settings | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> list[HealthCheckResult]:
    """Check credentials of every configured managed backend."""
    cfg = config or default_settings
    results: list[HealthCheckResult] = []
    if cfg.firecrawl_enabled:
        results.append(
            await check_firecrawl_auth(
                cfg.firecrawl_api_key,
                base_url=cfg.firecrawl_base_url,
                http_client=http_client,
            )
        )
    if cfg.brightdata_enabled:
        results.append(
            await check_brightdata_auth(
                cfg.brightdata_api_key,
                base_url=cfg.brightdata_base_url,
                http_client=http_client,
            )
        )
    return results
