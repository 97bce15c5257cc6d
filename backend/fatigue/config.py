"""
Configuration settings using Pydantic BaseSettings.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """Application configuration settings (``FATIGUE_`` environment prefix)."""

    model_config = SettingsConfigDict(
        env_prefix="FATIGUE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application
    app_name: str = "Fatigue Damage Engine"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Database
    database_url: str = "sqlite:///./fatigue_runs.db"

    # CORS
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000"
    ]

    # Engine
    max_workers: Optional[int] = None  # None: CPU count
    fail_fast: bool = True
    default_residual_policy: str = "HALF_CYCLES"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
