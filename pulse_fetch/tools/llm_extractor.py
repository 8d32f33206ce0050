"""LLM extraction over scraped page text via an OpenAI-compatible endpoint."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from loguru import logger

from pulse_fetch.config import Settings, settings

SYSTEM_PROMPT = (
    "You extract information from web page content. "
    "Answer the user's request using only the supplied content. "
    "If the content does not contain the answer, say so plainly."
)


@dataclass(slots=True)
class ExtractionResult:
    success: bool
    content: str | None = None
    error: str | None = None


class ExtractClient(Protocol):
    async def extract(self, content: str, prompt: str) -> ExtractionResult: ...


class OpenAIExtractClient:
    def __init__(
        self,
        api_key: str,
        *,
        base_url: str,
        model: str,
        max_tokens: int = 4096,
        openai_client: Any | None = None,
    ):
        self.model = model
        self.max_tokens = max_tokens
        if openai_client is None:
            from openai import AsyncOpenAI

            openai_client = AsyncOpenAI(api_key=api_key, base_url=base_url)
        self._client = openai_client

    async def extract(self, content: str, prompt: str) -> ExtractionResult:
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": f"{prompt}\n\n<content>\n{content}\n</content>"},
        ]
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=self.max_tokens,
                temperature=0,
            )
        except Exception as exc:
            logger.warning(f"Extraction request failed: {exc}")
            return ExtractionResult(success=False, error=f"Extraction failed: {exc}")

        choices = getattr(response, "choices", None) or []
        text = (choices[0].message.content or "").strip() if choices else ""
        if not text:
            return ExtractionResult(success=False, error="Extraction returned no content")
        return ExtractionResult(success=True, content=text)


def build_extract_client(config: Settings | None = None) -> ExtractClient | None:
    """Extraction client from settings, or None when no key is configured."""
    config = config or settings
    if not config.extraction_enabled:
        return None
    base_url = config.extract_llm_base_url.strip() or "https://openrouter.ai/api/v1"
    return OpenAIExtractClient(
        config.extract_llm_api_key,
        base_url=base_url,
        model=config.extract_llm_model,
        max_tokens=config.extract_max_tokens,
    )
