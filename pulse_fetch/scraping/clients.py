from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from pulse_fetch.config import Settings, settings as default_settings
from pulse_fetch.models.scrape import BackendOutcome, StrategyId
from pulse_fetch.tools.brightdata_scraper import BrightDataScraper
from pulse_fetch.tools.firecrawl_scraper import FirecrawlScraper
from pulse_fetch.tools.native_fetcher import NativeFetcher


class ScrapeBackend(Protocol):
    async def scrape(self, url: str, *, timeout_ms: int | None = None) -> BackendOutcome: ...


@dataclass(slots=True)
class ScrapingClients:
    """Registry of the backends that are configured for this process.

    Native fetching is always available. Managed services are only present
    when their credentials were supplied.
    """
    native: ScrapeBackend
    managed: dict[StrategyId, ScrapeBackend] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if StrategyId.NATIVE in self.managed:
            raise ValueError("native backend is registered separately from managed services")

    def get(self, strategy: StrategyId) -> ScrapeBackend | None:
        if strategy is StrategyId.NATIVE:
            return self.native
        return self.managed.get(strategy)

    def is_configured(self, strategy: StrategyId) -> bool:
        return self.get(strategy) is not None

    def configured(self) -> list[StrategyId]:
        return [s for s in StrategyId if self.is_configured(s)]


def build_scraping_clients(config: Settings | None = None) -> ScrapingClients:
    cfg = config or default_settings
    managed: dict[StrategyId, ScrapeBackend] = {}
    if cfg.firecrawl_enabled:
        managed[StrategyId.FIRECRAWL] = FirecrawlScraper(
            cfg.firecrawl_api_key,
            base_url=cfg.firecrawl_base_url,
        )
    if cfg.brightdata_enabled:
        managed[StrategyId.BRIGHTDATA] = BrightDataScraper(
            cfg.brightdata_api_key,
            zone=cfg.brightdata_zone,
            base_url=cfg.brightdata_base_url,
        )
    return ScrapingClients(
        native=NativeFetcher(user_agent=cfg.native_user_agent),
        managed=managed,
    )
