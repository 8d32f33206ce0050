from pydantic_settings import BaseSettings

from pulse_fetch.models.scrape import OptimizeFor


class Settings(BaseSettings):
    # Strategy ordering: cost tries native first, speed skips it
    optimize_for: OptimizeFor = OptimizeFor.COST

    # Firecrawl (optional; backend disabled without a key)
    firecrawl_api_key: str = ""
    firecrawl_base_url: str = "https://api.firecrawl.dev"

    # BrightData Web Unlocker (optional; backend disabled without a key)
    brightdata_api_key: str = ""
    brightdata_base_url: str = "https://api.brightdata.com"
    brightdata_zone: str = "web_unlocker1"

    # Native fetch
    native_user_agent: str = "PulseFetch/0.1 (+https://github.com/pulsemcp)"
    default_timeout_ms: int = 30000

    # LLM extraction (optional; disabled without a key)
    extract_llm_api_key: str = ""
    extract_llm_base_url: str = "https://openrouter.ai/api/v1"
    extract_llm_model: str = "openai/gpt-4o-mini"
    extract_max_tokens: int = 4096

    # Learned strategy config
    strategy_config_backend: str = "filesystem"  # filesystem | memory
    strategy_config_path: str = ".cache/pulse-fetch/scraping-strategies.md"

    # Resource storage
    resource_storage: str = "memory"  # memory | filesystem
    resource_storage_root: str = ".cache/pulse-fetch/resources"

    # Scrape tool output
    scrape_max_chars: int = 100000

    # App
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"
    log_dir: str = "logs"
    log_file_enabled: bool = True

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def firecrawl_enabled(self) -> bool:
        return bool(self.firecrawl_api_key.strip())

    @property
    def brightdata_enabled(self) -> bool:
        return bool(self.brightdata_api_key.strip())

    @property
    def extraction_enabled(self) -> bool:
        return bool(self.extract_llm_api_key.strip())


settings = Settings()
