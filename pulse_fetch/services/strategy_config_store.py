from __future__ import annotations

from typing import Iterable, Protocol
from urllib.parse import urlsplit

from pulse_fetch.config import settings
from pulse_fetch.models.scrape import StrategyId
from pulse_fetch.models.strategy_config import StrategyConfigEntry
from pulse_fetch.tools.web_utils import host_with_port, normalize_path


class StrategyConfigStore(Protocol):
    async def get_strategy_for_url(self, url: str) -> StrategyId | None: ...
    async def upsert_entry(self, entry: StrategyConfigEntry) -> None: ...
    async def list_entries(self) -> list[StrategyConfigEntry]: ...


def prefix_matches(host: str, path: str, prefix: str) -> bool:
    """Check whether a stored prefix covers the URL's host[:port] and path.

    Path prefixes (containing "/") match by string prefix on host+path.
    Bare host prefixes match the host itself, its www. form, or any subdomain.
    """
    if "/" in prefix:
        full_path = host + path
        return full_path.startswith(prefix) or full_path.startswith("www." + prefix)
    return host == prefix or host == "www." + prefix or host.endswith("." + prefix)


def match_strategy(entries: Iterable[StrategyConfigEntry], url: str) -> StrategyId | None:
    """Longest matching prefix wins; returns None for unparseable URLs."""
    host = host_with_port(url)
    if host is None:
        return None
    path = normalize_path(urlsplit(url.strip()).path)

    for entry in sorted(entries, key=lambda e: len(e.prefix), reverse=True):
        if prefix_matches(host, path, entry.prefix):
            return entry.default_strategy
    return None


_store: StrategyConfigStore | None = None


def get_strategy_config_store() -> StrategyConfigStore:
    global _store
    if _store is None:
        backend = settings.strategy_config_backend.lower().strip()
        if backend == "filesystem":
            from pulse_fetch.services.strategy_config_fs import FilesystemStrategyConfigStore

            _store = FilesystemStrategyConfigStore(config_path=settings.strategy_config_path)
        elif backend == "memory":
            from pulse_fetch.services.strategy_config_memory import MemoryStrategyConfigStore

            _store = MemoryStrategyConfigStore()
        else:
            raise ValueError(f"Unsupported STRATEGY_CONFIG_BACKEND: {settings.strategy_config_backend}")
    return _store
