from __future__ import annotations

from typing import Any

from loguru import logger

from pulse_fetch.config import settings
from pulse_fetch.errors import ResourceNotFoundError
from pulse_fetch.models.resources import MultiResourceWrite, StoredResource
from pulse_fetch.models.schemas import ResourceUris, ScrapeArgs, ScrapeResponse
from pulse_fetch.models.scrape import OptimizeFor, ScrapeRequest, ScrapeResult
from pulse_fetch.scraping.clients import ScrapingClients, build_scraping_clients
from pulse_fetch.scraping.strategies import scrape_with_strategy
from pulse_fetch.services.logger import log_event
from pulse_fetch.services.resource_store import ResourceStorage, get_resource_storage
from pulse_fetch.services.strategy_config_store import StrategyConfigStore, get_strategy_config_store
from pulse_fetch.tools.html_cleaner import clean_html, looks_like_html
from pulse_fetch.tools.llm_extractor import ExtractClient, build_extract_client
from pulse_fetch.tools.web_utils import truncate_content


class ScrapeService:
    """Fetch tool handler: cached lookup, strategy-aware scrape, cleaning, extraction and persistence."""

    def __init__(
        self,
        *,
        clients: ScrapingClients | None = None,
        config_store: StrategyConfigStore | None = None,
        storage: ResourceStorage | None = None,
        optimize_for: OptimizeFor | None = None,
        extract_client: ExtractClient | None = None,
    ):
        self.clients = clients or build_scraping_clients()
        self.config_store = config_store or get_strategy_config_store()
        self.storage = storage or get_resource_storage()
        self.optimize_for = optimize_for or settings.optimize_for
        self.extract_client = extract_client if extract_client is not None else build_extract_client()

    async def scrape(self, args: ScrapeArgs | dict[str, Any]) -> ScrapeResponse:
        if not isinstance(args, ScrapeArgs):
            args = ScrapeArgs.model_validate(args)

        if not args.force_rescrape:
            cached = await self._load_cached(args)
            if cached is not None:
                return cached

        result = await scrape_with_strategy(
            self.clients,
            self.config_store,
            ScrapeRequest(url=args.url, timeout_ms=args.timeout_ms),
            args.strategy,
            optimize_for=self.optimize_for,
        )
        attempted = [s.value for s in result.diagnostics.strategies_attempted] if result.diagnostics else []

        if not result.success:
            return ScrapeResponse(
                url=args.url,
                text=_failure_text(args.url, result),
                source=result.source,
                is_error=True,
                strategies_attempted=attempted,
            )

        raw = result.content or ""
        cleaned: str | None = None
        title: str | None = None
        if args.clean and looks_like_html(raw):
            cleaned_content = clean_html(raw)
            cleaned = cleaned_content.text or None
            title = cleaned_content.title or None

        extracted: str | None = None
        extract_error: str | None = None
        if args.extract:
            extracted, extract_error = await self._extract(cleaned or raw, args.extract)

        uris: ResourceUris | None = None
        if args.save_resource:
            written = await self.storage.write_multi(
                MultiResourceWrite(
                    url=args.url,
                    raw=raw,
                    cleaned=cleaned,
                    extracted=extracted,
                    metadata={
                        "source": result.source,
                        "title": title,
                        "content_type": result.content_type,
                        "extract": args.extract,
                    },
                )
            )
            uris = ResourceUris(raw=written.raw, cleaned=written.cleaned, extracted=written.extracted)

        log_event("scrape_complete", f"Scraped {args.url}", source=result.source, saved=uris is not None)
        if extract_error:
            return ScrapeResponse(
                url=args.url,
                text=extract_error,
                source=result.source,
                is_error=True,
                resource_uris=uris,
                strategies_attempted=attempted,
            )
        return self._render(
            args,
            extracted or cleaned or raw,
            source=result.source,
            resource_uris=uris,
            strategies_attempted=attempted,
        )

    async def _load_cached(self, args: ScrapeArgs) -> ScrapeResponse | None:
        """Most recent stored variant for the URL.

        With an extraction prompt only an extraction made with that same prompt
        counts. Without one, cleaned is preferred over raw.
        """
        resources = await self.storage.find_by_url_and_extract(args.url, args.extract)
        wanted_types = ("extracted",) if args.extract else ("cleaned", "raw")
        chosen: StoredResource | None = None
        for wanted in wanted_types:
            chosen = next((r for r in resources if r.metadata.resource_type == wanted), None)
            if chosen is not None:
                break
        if chosen is None:
            return None

        try:
            content = await self.storage.read(chosen.uri)
        except ResourceNotFoundError:
            logger.debug(f"Cached resource vanished before read: {chosen.uri}")
            return None

        return self._render(
            args,
            content.text,
            source=chosen.metadata.source or "cache",
            from_cache=True,
        )

    async def _extract(self, content: str, prompt: str) -> tuple[str | None, str | None]:
        if self.extract_client is None:
            return None, "Extraction is not configured. Set EXTRACT_LLM_API_KEY to enable it."
        outcome = await self.extract_client.extract(content, prompt)
        if not outcome.success:
            return None, outcome.error or "Extraction failed"
        return outcome.content, None

    def _render(
        self,
        args: ScrapeArgs,
        text: str,
        *,
        source: str,
        from_cache: bool = False,
        resource_uris: ResourceUris | None = None,
        strategies_attempted: list[str] | None = None,
    ) -> ScrapeResponse:
        chunk, truncated = truncate_content(text, args.max_chars, args.start_index)
        next_start = args.start_index + args.max_chars if truncated else None
        if truncated:
            chunk += (
                f"\n\n[Content truncated at {args.max_chars} characters. "
                f"Use start_index={next_start} to continue reading]"
            )
        return ScrapeResponse(
            url=args.url,
            text=chunk,
            source=source,
            from_cache=from_cache,
            truncated=truncated,
            next_start_index=next_start,
            resource_uris=resource_uris,
            strategies_attempted=strategies_attempted or [],
        )


def _failure_text(url: str, result: ScrapeResult) -> str:
    text = f"Failed to scrape {url}. {result.error}"
    errors = result.diagnostics.describe_errors() if result.diagnostics else ""
    if errors:
        text += f"\nErrors: {errors}"
    return text
