from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class StrategyId(str, Enum):
    NATIVE = "native"
    FIRECRAWL = "firecrawl"
    BRIGHTDATA = "brightdata"

    @classmethod
    def parse(cls, value: str | StrategyId) -> StrategyId:
        """Resolve a strategy name, rejecting anything outside the enum."""
        if isinstance(value, cls):
            return value
        normalized = str(value).lower().strip()
        try:
            return cls(normalized)
        except ValueError:
            allowed = ", ".join(s.value for s in cls)
            raise ValueError(f"Unknown scraping strategy: {value!r} (expected one of: {allowed})") from None


class OptimizeFor(str, Enum):
    COST = "cost"
    SPEED = "speed"


NO_SOURCE = "none"


@dataclass(frozen=True, slots=True)
class ScrapeRequest:
    url: str
    timeout_ms: int | None = None


@dataclass(slots=True)
class BackendOutcome:
    """Single attempt made by one backend."""
    success: bool
    content: str | None = None
    status_code: int | None = None
    error: str | None = None
    content_type: str | None = None


@dataclass(slots=True)
class ScrapeDiagnostics:
    strategies_attempted: list[StrategyId] = field(default_factory=list)
    strategy_errors: dict[StrategyId, str] = field(default_factory=dict)
    timing_ms: dict[StrategyId, int] = field(default_factory=dict)

    def describe_errors(self) -> str:
        return "; ".join(f"{s.value}: {err}" for s, err in self.strategy_errors.items())


@dataclass(slots=True)
class ScrapeResult:
    success: bool
    content: str | None
    source: str
    error: str | None = None
    diagnostics: ScrapeDiagnostics | None = None
    content_type: str | None = None

    def __post_init__(self) -> None:
        if self.success and self.content is None:
            raise ValueError("successful scrape result must carry content")
