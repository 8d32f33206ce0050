from __future__ import annotations

import asyncio
import os
import re
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path

from pulse_fetch.models.scrape import StrategyId
from pulse_fetch.models.strategy_config import StrategyConfigEntry
from pulse_fetch.services.logger import log_store_operation
from pulse_fetch.services.strategy_config_store import match_strategy

TABLE_HEADER = """# Scraping Strategy Configuration

Learned scraping strategy per URL prefix (native, firecrawl, brightdata).
Longest matching prefix wins.

| prefix | default_strategy | notes | updated_at |
| ------ | ---------------- | ----- | ---------- |"""

_CELL_SPLIT = re.compile(r"(?<!\\)\|")


def _escape_cell(value: str) -> str:
    return value.replace("\n", " ").replace("|", "\\|")


def _unescape_cell(value: str) -> str:
    return value.strip().replace("\\|", "|")


def _parse_timestamp(value: str) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_markdown_table(content: str) -> list[StrategyConfigEntry]:
    """Parse the first prefix/default_strategy table in the file.

    Rows naming an unknown strategy are skipped.
    """
    entries: list[StrategyConfigEntry] = []
    header_found = False

    for line in content.splitlines():
        trimmed = line.strip()
        if not trimmed:
            continue

        if not (trimmed.startswith("|") and trimmed.endswith("|")):
            if header_found:
                break
            continue

        if not header_found:
            lowered = trimmed.lower()
            if "prefix" in lowered and "default_strategy" in lowered:
                header_found = True
            continue

        if set(trimmed) <= {"|", "-", " ", ":"}:
            continue

        cells = [_unescape_cell(c) for c in _CELL_SPLIT.split(trimmed[1:-1])]
        if len(cells) < 2 or not cells[0]:
            continue
        try:
            strategy = StrategyId.parse(cells[1])
        except ValueError:
            continue

        entries.append(
            StrategyConfigEntry(
                prefix=cells[0],
                default_strategy=strategy,
                notes=(cells[2] if len(cells) > 2 else "") or None,
                updated_at=_parse_timestamp(cells[3]) if len(cells) > 3 else None,
            )
        )

    return entries


def render_markdown_table(entries: list[StrategyConfigEntry]) -> str:
    rows = []
    for entry in entries:
        updated = entry.updated_at.isoformat() if entry.updated_at else ""
        rows.append(
            f"| {_escape_cell(entry.prefix)} | {entry.default_strategy.value} | "
            f"{_escape_cell(entry.notes or '')} | {updated} |"
        )
    return "\n".join([TABLE_HEADER, *rows, ""])


class FilesystemStrategyConfigStore:
    """Durable strategy config kept as a markdown table on disk.

    The file stays human-editable: operators can pre-seed or correct
    entries by hand, and the store picks them up on the next lookup.
    """

    def __init__(self, *, config_path: str):
        self.config_path = Path(config_path)
        self._lock = asyncio.Lock()

    async def load_config(self) -> list[StrategyConfigEntry]:
        try:
            content = await asyncio.to_thread(self.config_path.read_text, encoding="utf-8")
        except FileNotFoundError:
            return []
        return parse_markdown_table(content)

    async def save_config(self, entries: list[StrategyConfigEntry]) -> None:
        ordered = sorted(entries, key=lambda e: len(e.prefix), reverse=True)
        await asyncio.to_thread(self._write_atomic, render_markdown_table(ordered))

    def _write_atomic(self, content: str) -> None:
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.config_path.with_name(f".{self.config_path.name}.{os.getpid()}.tmp")
        tmp_path.write_text(content, encoding="utf-8")
        os.replace(tmp_path, self.config_path)

    async def get_strategy_for_url(self, url: str) -> StrategyId | None:
        return match_strategy(await self.load_config(), url)

    async def upsert_entry(self, entry: StrategyConfigEntry) -> None:
        stamped = replace(entry, updated_at=datetime.now(timezone.utc))
        async with self._lock:
            entries = [e for e in await self.load_config() if e.prefix != entry.prefix]
            entries.append(stamped)
            await self.save_config(entries)
        log_store_operation(
            "upsert",
            "strategy_config",
            "success",
            details=f"{entry.prefix} -> {entry.default_strategy.value}",
        )

    async def list_entries(self) -> list[StrategyConfigEntry]:
        entries = await self.load_config()
        return sorted(entries, key=lambda e: len(e.prefix), reverse=True)
