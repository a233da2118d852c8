"""Configuration module using Pydantic Settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Drive API quotas (per 100 seconds)
    quota_per_caller_limit: int = 20000
    quota_global_limit: int = 12000
    quota_window_seconds: float = 100.0

    # Alert thresholds (fraction of limit)
    quota_warning_threshold: float = 0.8
    quota_critical_threshold: float = 0.95

    # Error log capacity
    quota_error_log_size: int = 100

    # Cleanup job
    quota_cleanup_enabled: bool = True
    quota_cleanup_interval_seconds: int = 300  # 5 minutes

    # Logging
    log_level: str = "INFO"

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = 8000


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience function for quick access
settings = get_settings()
