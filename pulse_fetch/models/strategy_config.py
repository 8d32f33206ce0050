from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from pulse_fetch.models.scrape import StrategyId


@dataclass(slots=True)
class StrategyConfigEntry:
    prefix: str
    default_strategy: StrategyId
    notes: str | None = None
    updated_at: datetime | None = None
