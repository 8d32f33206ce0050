from __future__ import annotations

import time

from loguru import logger

from pulse_fetch.models.scrape import (
    NO_SOURCE,
    BackendOutcome,
    OptimizeFor,
    ScrapeDiagnostics,
    ScrapeRequest,
    ScrapeResult,
    StrategyId,
)
from pulse_fetch.models.strategy_config import StrategyConfigEntry
from pulse_fetch.scraping.clients import ScrapeBackend, ScrapingClients
from pulse_fetch.services.logger import log_scrape_attempt
from pulse_fetch.services.strategy_config_store import StrategyConfigStore
from pulse_fetch.tools.web_utils import extract_url_pattern

STRATEGY_ORDER: dict[OptimizeFor, tuple[StrategyId, ...]] = {
    OptimizeFor.COST: (StrategyId.NATIVE, StrategyId.FIRECRAWL, StrategyId.BRIGHTDATA),
    OptimizeFor.SPEED: (StrategyId.FIRECRAWL, StrategyId.BRIGHTDATA),
}

EXHAUSTED_MESSAGE = "All fallback strategies failed"

AUTH_ERROR_MARKERS = ("unauthorized", "invalid token", "authentication", "token expired", "http 401")


def _describe_failure(strategy: StrategyId, outcome: BackendOutcome) -> str:
    error = outcome.error or (
        f"HTTP {outcome.status_code}" if outcome.status_code else "Request failed without error details"
    )
    if strategy is StrategyId.NATIVE:
        return error
    if outcome.status_code in (401, 403) or any(m in error.lower() for m in AUTH_ERROR_MARKERS):
        return f"Authentication failed: {error}"
    return error


async def _attempt(
    strategy: StrategyId,
    backend: ScrapeBackend,
    request: ScrapeRequest,
    diagnostics: ScrapeDiagnostics | None = None,
) -> BackendOutcome:
    """Run one backend, converting anything it raises into a failed outcome."""
    started = time.monotonic()
    try:
        outcome = await backend.scrape(request.url, timeout_ms=request.timeout_ms)
    except Exception as exc:
        logger.exception(f"{strategy.value} backend raised while scraping {request.url}")
        outcome = BackendOutcome(success=False, error=str(exc) or type(exc).__name__)
    elapsed_ms = int((time.monotonic() - started) * 1000)

    if outcome.success and not outcome.content:
        outcome = BackendOutcome(
            success=False,
            status_code=outcome.status_code,
            error="Backend reported success without content",
        )

    error = None if outcome.success else _describe_failure(strategy, outcome)
    if diagnostics is not None:
        diagnostics.strategies_attempted.append(strategy)
        diagnostics.timing_ms[strategy] = elapsed_ms
        if error:
            diagnostics.strategy_errors[strategy] = error

    log_scrape_attempt(
        strategy.value,
        request.url,
        "success" if outcome.success else "failed",
        duration_ms=elapsed_ms,
        error=error,
    )
    if error:
        outcome.error = error
    return outcome


async def scrape_universal(
    clients: ScrapingClients,
    request: ScrapeRequest,
    *,
    optimize_for: OptimizeFor = OptimizeFor.COST,
) -> ScrapeResult:
    """Try each configured backend in the mode's fixed order until one succeeds.

    cost:  native -> firecrawl -> brightdata
    speed: firecrawl -> brightdata (native skipped)
    Unconfigured backends are skipped without recording an error.
    """
    diagnostics = ScrapeDiagnostics()

    for strategy in STRATEGY_ORDER[optimize_for]:
        backend = clients.get(strategy)
        if backend is None:
            continue
        outcome = await _attempt(strategy, backend, request, diagnostics)
        if outcome.success:
            return ScrapeResult(
                success=True,
                content=outcome.content,
                source=strategy.value,
                diagnostics=diagnostics,
                content_type=outcome.content_type,
            )

    attempted = ", ".join(s.value for s in diagnostics.strategies_attempted) or "none configured"
    logger.warning(
        f"{EXHAUSTED_MESSAGE} for {request.url}. Attempted: {attempted}. "
        f"Errors: {diagnostics.describe_errors() or '-'}"
    )
    return ScrapeResult(
        success=False,
        content=None,
        source=NO_SOURCE,
        error=EXHAUSTED_MESSAGE,
        diagnostics=diagnostics,
    )


async def scrape_with_single_strategy(
    clients: ScrapingClients,
    strategy: StrategyId,
    request: ScrapeRequest,
) -> ScrapeResult:
    backend = clients.get(strategy)
    if backend is None:
        return ScrapeResult(
            success=False,
            content=None,
            source=strategy.value,
            error=f"{strategy.value} client not configured",
        )

    diagnostics = ScrapeDiagnostics()
    outcome = await _attempt(strategy, backend, request, diagnostics)
    if outcome.success:
        return ScrapeResult(
            success=True,
            content=outcome.content,
            source=strategy.value,
            diagnostics=diagnostics,
            content_type=outcome.content_type,
        )
    return ScrapeResult(
        success=False,
        content=None,
        source=strategy.value,
        error=f"Strategy {strategy.value} failed: {outcome.error}",
        diagnostics=diagnostics,
    )


async def _remember_strategy(
    config_store: StrategyConfigStore,
    url: str,
    strategy: StrategyId,
    notes: str,
) -> None:
    try:
        await config_store.upsert_entry(
            StrategyConfigEntry(
                prefix=extract_url_pattern(url),
                default_strategy=strategy,
                notes=notes,
            )
        )
    except Exception as exc:
        logger.warning(f"Failed to update strategy config for {url}: {exc}")


async def scrape_with_strategy(
    clients: ScrapingClients,
    config_store: StrategyConfigStore,
    request: ScrapeRequest,
    explicit_strategy: StrategyId | None = None,
    *,
    optimize_for: OptimizeFor = OptimizeFor.COST,
) -> ScrapeResult:
    """Scrape using an explicit or learned strategy first, then the universal fallback.

    - Explicit strategy succeeds: returned as-is, config untouched.
    - Explicit strategy fails: universal fallback; a winner is upserted for the URL pattern.
    - Learned strategy succeeds: returned as-is.
    - Learned strategy fails: universal fallback; the existing entry is kept.
    - Nothing learned: universal fallback; a winner creates a new entry.
    Config store errors are logged and treated as "no entry".
    """
    if explicit_strategy is not None:
        explicit_result = await scrape_with_single_strategy(clients, explicit_strategy, request)
        if explicit_result.success:
            return explicit_result

        logger.debug(
            f"Explicit strategy '{explicit_strategy.value}' failed for {request.url}, "
            "falling back to universal approach"
        )
        universal_result = await scrape_universal(clients, request, optimize_for=optimize_for)
        if universal_result.success:
            await _remember_strategy(
                config_store,
                request.url,
                StrategyId(universal_result.source),
                f"Auto-discovered after {explicit_strategy.value} failed",
            )
        return universal_result

    configured: StrategyId | None = None
    try:
        configured = await config_store.get_strategy_for_url(request.url)
    except Exception as exc:
        logger.warning(f"Failed to load strategy config for {request.url}: {exc}")

    if configured is not None:
        configured_result = await scrape_with_single_strategy(clients, configured, request)
        if configured_result.success:
            return configured_result
        logger.debug(
            f"Configured strategy '{configured.value}' failed for {request.url}, "
            "falling back to universal approach"
        )

    universal_result = await scrape_universal(clients, request, optimize_for=optimize_for)
    if universal_result.success and configured is None:
        await _remember_strategy(
            config_store,
            request.url,
            StrategyId(universal_result.source),
            "Auto-discovered via universal fallback",
        )
    return universal_result
