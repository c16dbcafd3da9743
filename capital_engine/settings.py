"""Centralized settings for the capital engine.

Uses pydantic-settings to load from environment variables (prefixed
CAPITAL_ENGINE_) with defaults matching the engine configs.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Process-level defaults loaded from environment variables."""

    # --- Allocation ---
    default_allocation_method: str = "hybrid"
    default_capital: float = 100_000.0
    max_assets_in_portfolio: int = 30
    min_assets_in_portfolio: int = 1

    # --- Risk ---
    var_confidence: float = 0.95
    min_observations: int = 30

    # --- Logging ---
    log_level: str = "INFO"
    log_format: str = "console"

    model_config = {
        "env_prefix": "CAPITAL_ENGINE_",
        "env_file": ".env",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton."""
    return Settings()
