"""Application configuration managed via environment variables."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Monthplan Backend"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "postgresql+psycopg2://monthplan@localhost:5432/monthplan"
    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "monthplan"
    openrouter_api_key: str | None = None
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_model: str = "google/gemini-2.5-flash"
    openrouter_timeout_seconds: float = 60.0
    openrouter_temperature: float | None = None
    openrouter_max_tokens: int | None = None
    openrouter_system_prompt: str | None = None
    draft_ttl_hours: int = 24
    generation_quota_per_month: int = 50
    scheduler_enabled: bool = False
    scheduler_timezone: str = "UTC"
    draft_cleanup_interval_minutes: int = 60
    jobs_run_on_startup: bool = False


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
