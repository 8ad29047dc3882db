"""Configuration settings for the course viewer core."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Import limits and defaults, overridable via COURSEMAP_* env vars."""

    model_config = SettingsConfigDict(
        env_prefix="COURSEMAP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Upload limits
    max_map_size_mb: float = 20.0
    max_course_size_mb: float = 5.0
    max_world_file_size_kb: float = 10.0

    # Rendering
    default_zoom: float = 15.0

    # Logging
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
