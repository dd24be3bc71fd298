"""Configuration management for the project."""

from typing import List
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Pollution API
    pollu_api_base: str = Field(default="http://localhost:3000")
    pollu_api_username: str = Field(default="")
    pollu_api_password: str = Field(default="")
    pollu_api_timeout: float = Field(default=10.0)
    pollu_countries: List[str] = Field(default_factory=lambda: ["PL", "DE", "ES", "FR"])
    pollu_page_limit: int = Field(default=50)
    pollu_rate_limit: int = Field(default=5)
    pollu_rate_window_seconds: int = Field(default=60)
    pollu_token_skew_seconds: int = Field(default=30)
    pollu_default_token_ttl_seconds: int = Field(default=900)

    # Wikipedia summary service
    wiki_api_base: str = Field(default="https://en.wikipedia.org/w/api.php")
    wiki_timeout: float = Field(default=10.0)

    # Cache
    cache_backend: str = Field(default="file")
    cache_dir: str = Field(default="./cache")
    raw_cache_ttl_seconds: int = Field(default=600)
    report_cache_ttl_seconds: int = Field(default=24 * 3600)
    descriptor_cache_ttl_seconds: int = Field(default=24 * 3600)
    auth_cache_ttl_seconds: int = Field(default=12 * 3600)
    rate_window_ttl_seconds: int = Field(default=120)

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")


settings = Settings()
