"""Application settings loaded from environment variables and .env file."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for the repository explorer."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    github_token: str | None = None
    github_api_url: str = "https://api.github.com"
    cache_dir: Path = Path.home() / ".cache/github-repo-explorer"
    skip_cache: bool = False
    # Listing and single-item calls give up quickly; search calls effectively never do
    max_retries: int = 5
    search_max_retries: int = 9999


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
