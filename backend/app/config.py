"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str | None = None

    # Generative chat service (OpenAI-compatible API, DeepSeek by default)
    llm_api_key: SecretStr | None = None
    llm_base_url: str = "https://api.deepseek.com"
    llm_model: str = "deepseek-chat"
    llm_timeout_seconds: float = 300.0
    llm_max_tokens: int = 8192
    llm_generation_temperature: float = 0.3
    llm_chat_temperature: float = 0.7

    # POI provider (Amap REST v3)
    amap_api_key: str = ""
    amap_base_url: str = "https://restapi.amap.com/v3"
    poi_timeout_seconds: float = 10.0
    poi_page_size: int = 5

    # Place verification (Tavily web search)
    tavily_api_key: str = ""
    tavily_base_url: str = "https://api.tavily.com"
    verification_timeout_seconds: float = 15.0
    verification_max_results: int = 3

    # Composition
    min_attractions_for_poi_plan: int = 2
    prompt_max_hotels: int = 5
    prompt_max_restaurants: int = 15
    prompt_max_attractions: int = 15

    # Conversational mutation
    chat_history_limit: int = 10


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
