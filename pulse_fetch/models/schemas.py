from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from pulse_fetch.config import settings
from pulse_fetch.models.scrape import StrategyId
from pulse_fetch.tools.web_utils import is_valid_url


# --- Requests ---


class ScrapeArgs(BaseModel):
    url: str
    timeout_ms: int | None = Field(default=None, gt=0)
    strategy: StrategyId | None = None
    max_chars: int = Field(default_factory=lambda: settings.scrape_max_chars, gt=0)
    start_index: int = Field(default=0, ge=0)
    save_resource: bool = True
    clean: bool = True
    force_rescrape: bool = False
    extract: str | None = None

    @field_validator("url")
    @classmethod
    def _http_url(cls, value: str) -> str:
        value = value.strip()
        if not is_valid_url(value):
            raise ValueError("url must be an absolute http(s) URL")
        return value

    @field_validator("extract")
    @classmethod
    def _blank_extract(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()

    @field_validator("strategy", mode="before")
    @classmethod
    def _known_strategy(cls, value: object) -> object:
        if value is None or value == "":
            return None
        return StrategyId.parse(value)


# --- Responses ---


class ResourceUris(BaseModel):
    raw: str
    cleaned: str | None = None
    extracted: str | None = None


class ScrapeResponse(BaseModel):
    url: str
    text: str
    source: str
    is_error: bool = False
    from_cache: bool = False
    truncated: bool = False
    next_start_index: int | None = None
    resource_uris: ResourceUris | None = None
    strategies_attempted: list[str] = Field(default_factory=list)
