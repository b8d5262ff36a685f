"""Application configuration with environment separation."""
from functools import lru_cache
from enum import Enum

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Environment
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = Field(default=True)
    log_level: str = Field(default="INFO")

    # App
    app_name: str = "CoinCoach"
    api_v1_prefix: str = "/api/v1"

    # Security - stored as comma-separated string in .env
    allowed_origins: str = Field(default="http://localhost:3000,http://localhost:5173")
    rate_limit_per_minute: int = Field(default=60)

    # Endpoint rate limits (fixed window, per client)
    chat_rate_limit: int = Field(default=20)
    pattern_rate_limit: int = Field(default=10)
    rate_limit_window_seconds: float = Field(default=60.0)
    rate_limit_sweep_seconds: float = Field(default=60.0)

    # Outbound calls share one timeout
    upstream_timeout_seconds: float = Field(default=30.0)

    # CoinGecko
    coingecko_base_url: str = Field(default="https://api.coingecko.com/api/v3")
    market_cache_ttl_seconds: float = Field(default=60.0)
    market_cache_max_entries: int = Field(default=256)

    # Gemini
    gemini_api_key: str = Field(default="")
    gemini_base_url: str = Field(default="https://generativelanguage.googleapis.com/v1beta")
    gemini_model: str = Field(default="gemini-2.5-flash")

    # Lessons
    lesson_cache_path: str = Field(default="data/lessons/cached-content.json")
    lesson_generation_delay_seconds: float = Field(default=2.0)

    # Chat
    max_message_length: int = Field(default=2000)

    @field_validator("debug", mode="before")
    @classmethod
    def set_debug(cls, v, info):
        """Disable debug in production."""
        if info.data.get("environment") == Environment.PRODUCTION:
            return False
        return v

    @property
    def allowed_origins_list(self) -> list[str]:
        """Get allowed origins as list."""
        return [origin.strip() for origin in self.allowed_origins.split(",")]

    @property
    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        return self.environment == Environment.DEVELOPMENT

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
