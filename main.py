"""pulse-fetch - multi-strategy web scraping

Simple CLI for scraping pages and inspecting learned strategies and stored resources.
"""

import argparse
import asyncio
import sys

from pydantic import ValidationError

from pulse_fetch.config import settings
from pulse_fetch.models.scrape import OptimizeFor
from pulse_fetch.scraping.clients import build_scraping_clients
from pulse_fetch.scraping.service import ScrapeService
from pulse_fetch.services.resource_store import get_resource_storage
from pulse_fetch.services.strategy_config_store import get_strategy_config_store
from pulse_fetch.tools.healthcheck import run_health_checks


async def run_scrape(args: argparse.Namespace) -> int:
    optimize_for = OptimizeFor(args.optimize_for) if args.optimize_for else settings.optimize_for
    clients = build_scraping_clients()
    print(f"Scraping: {args.url}")
    print(f"Backends: {', '.join(s.value for s in clients.configured())} (optimize for {optimize_for.value})")
    print("-" * 50)

    service = ScrapeService(clients=clients, optimize_for=optimize_for)
    try:
        response = await service.scrape(
            {
                "url": args.url,
                "strategy": args.strategy,
                "timeout_ms": args.timeout_ms,
                "max_chars": args.max_chars or settings.scrape_max_chars,
                "start_index": args.start_index,
                "save_resource": not args.no_save,
                "force_rescrape": args.force,
                "extract": args.extract,
            }
        )
    except ValidationError as e:
        print(f"Invalid arguments: {e}", file=sys.stderr)
        return 2

    if response.is_error:
        print(response.text, file=sys.stderr)
        if response.strategies_attempted:
            print(f"Attempted: {', '.join(response.strategies_attempted)}", file=sys.stderr)
        return 1

    print(response.text)
    print(f"\n{'=' * 50}")
    print(f"Scraped using: {response.source}{' (cached)' if response.from_cache else ''}")
    if response.resource_uris:
        print(f"Saved raw: {response.resource_uris.raw}")
        if response.resource_uris.cleaned:
            print(f"Saved cleaned: {response.resource_uris.cleaned}")
    return 0


async def run_strategies(_args: argparse.Namespace) -> int:
    entries = await get_strategy_config_store().list_entries()
    if not entries:
        print("No learned strategies yet.")
        return 0
    for entry in entries:
        updated = entry.updated_at.isoformat() if entry.updated_at else "-"
        print(f"{entry.prefix:<50} {entry.default_strategy.value:<12} {updated}  {entry.notes or ''}")
    return 0


async def run_resources(args: argparse.Namespace) -> int:
    storage = get_resource_storage()
    resources = await storage.find_by_url(args.url) if args.url else await storage.list_resources()
    if not resources:
        print("No stored resources.")
        return 0
    for resource in resources:
        meta = resource.metadata
        print(f"[{meta.resource_type}] {meta.timestamp}  {resource.uri}  (source: {meta.source or '-'})")
    return 0


async def run_health(_args: argparse.Namespace) -> int:
    results = await run_health_checks()
    if not results:
        print("No managed backends configured; only native fetching is available.")
        return 0
    failed = 0
    for result in results:
        status = "OK" if result.success else f"FAILED - {result.error}"
        print(f"{result.service}: {status}")
        failed += 0 if result.success else 1
    return 1 if failed else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="pulse-fetch: multi-strategy web scraping")
    sub = parser.add_subparsers(dest="command", required=True)

    scrape = sub.add_parser("scrape", help="Scrape a URL")
    scrape.add_argument("url", help="URL to scrape")
    scrape.add_argument("--strategy", "-s", help="Force a strategy first (native, firecrawl, brightdata)")
    scrape.add_argument("--optimize-for", choices=[o.value for o in OptimizeFor], help="Fallback ordering mode")
    scrape.add_argument("--timeout-ms", type=int, help="Per-backend timeout in milliseconds")
    scrape.add_argument("--max-chars", type=int, help="Maximum characters to print")
    scrape.add_argument("--start-index", type=int, default=0, help="Character offset to start from")
    scrape.add_argument("--no-save", action="store_true", help="Do not store the result as a resource")
    scrape.add_argument("--force", action="store_true", help="Ignore stored resources and scrape again")
    scrape.add_argument("--extract", "-e", help="Prompt for LLM extraction over the scraped content")
    scrape.set_defaults(handler=run_scrape)

    strategies = sub.add_parser("strategies", help="List learned strategies per URL pattern")
    strategies.set_defaults(handler=run_strategies)

    resources = sub.add_parser("resources", help="List stored resources")
    resources.add_argument("--url", help="Only resources stored for this exact URL")
    resources.set_defaults(handler=run_resources)

    health = sub.add_parser("health", help="Check managed backend credentials")
    health.set_defaults(handler=run_health)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return asyncio.run(args.handler(args))


if __name__ == "__main__":
    sys.exit(main())
