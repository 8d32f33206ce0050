from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone

from pulse_fetch.models.scrape import StrategyId
from pulse_fetch.models.strategy_config import StrategyConfigEntry
from pulse_fetch.services.strategy_config_store import match_strategy


class MemoryStrategyConfigStore:
    """Process-local strategy config, used in tests and when persistence is off."""

    def __init__(self, entries: list[StrategyConfigEntry] | None = None):
        self._entries: dict[str, StrategyConfigEntry] = {}
        for entry in entries or []:
            self._entries[entry.prefix] = entry

    async def get_strategy_for_url(self, url: str) -> StrategyId | None:
        return match_strategy(self._entries.values(), url)

    async def upsert_entry(self, entry: StrategyConfigEntry) -> None:
        self._entries[entry.prefix] = replace(entry, updated_at=datetime.now(timezone.utc))

    async def list_entries(self) -> list[StrategyConfigEntry]:
        return sorted(self._entries.values(), key=lambda e: len(e.prefix), reverse=True)
