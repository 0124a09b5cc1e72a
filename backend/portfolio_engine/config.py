# backend/portfolio_engine/config.py
"""
Engine configuration using Pydantic Settings.

Loads configuration from environment variables with validation:
- LOG_LEVEL / LOG_FORMAT: Logging behaviour
- CHART_STEPS / BENCHMARK_POINTS: Resolution of generated series
- *_TTL_SECONDS: Freshness windows for the fetch collaborators' caches
- FX_CURRENT_URL / FX_HISTORICAL_URL: Exchange rate endpoints (https required in production)

The pure valuation engine only reads the series resolution settings. The
cache and endpoint settings belong to the fetch collaborators in
portfolio_engine.services.market_data.

Usage:
    from portfolio_engine.config import settings

    settings.chart_steps   # default steps of ValuationSeriesGenerator
"""
from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Find the .env file in project root (parent of backend/)
_BACKEND_DIR = Path(__file__).resolve().parent.parent
_PROJECT_ROOT = _BACKEND_DIR.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """
    Engine settings loaded from environment variables.

    Environment variables:
        - ENVIRONMENT: Runtime environment (development, test, production)
        - LOG_LEVEL: Logging level (default: "INFO")
        - LOG_FORMAT: "text" or "json" (default: "text")

    Series resolution:
        - CHART_STEPS: Intervals in a generated valuation series (default: 150)
        - BENCHMARK_POINTS: Points in a normalized benchmark series (default: 150)
        - PRICE_HISTORY_MAX_POINTS: Cap applied when merging price histories
    """

    environment: Literal["development", "test", "production"] = Field(
        default="development",
        description="Runtime environment (development, test, production)"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: Literal["text", "json"] = Field(
        default="text",
        description="Log output format"
    )

    # =========================================================================
    # SERIES RESOLUTION
    # =========================================================================
    chart_steps: int = Field(
        default=150,
        ge=1,
        le=2000,
        description="Number of intervals in a valuation series (steps + 1 points)"
    )
    benchmark_points: int = Field(
        default=150,
        ge=2,
        le=2000,
        description="Number of points in a normalized benchmark series"
    )
    price_history_max_points: int = Field(
        default=2000,
        ge=10,
        description="Maximum samples kept when merging a price history"
    )

    # =========================================================================
    # FETCH COLLABORATORS
    # =========================================================================
    fx_cache_ttl_seconds: int = Field(
        default=24 * 60 * 60,
        ge=0,
        description="Freshness window of the current FX rate snapshot"
    )
    benchmark_ttl_short_seconds: int = Field(
        default=60 * 60,
        ge=0,
        description="Benchmark cache freshness for 24H and 1W windows"
    )
    benchmark_ttl_long_seconds: int = Field(
        default=24 * 60 * 60,
        ge=0,
        description="Benchmark cache freshness for all longer windows"
    )
    http_timeout_seconds: int = Field(
        default=10,
        ge=1,
        le=120,
        description="Timeout for outbound HTTP requests"
    )
    fx_current_url: str = Field(
        default="https://api.exchangerate-api.com/v4/latest/USD",
        description="Endpoint returning the latest USD-anchored rates"
    )
    fx_historical_url: str = Field(
        default="https://api.frankfurter.app",
        description="Base URL of the historical time-series rate API"
    )

    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE) if _ENV_FILE.exists() else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_ttls(self) -> "Settings":
        """Short benchmark windows must never be cached longer than long ones."""
        if self.benchmark_ttl_short_seconds > self.benchmark_ttl_long_seconds:
            raise ValueError(
                "BENCHMARK_TTL_SHORT_SECONDS must not exceed "
                f"BENCHMARK_TTL_LONG_SECONDS ({self.benchmark_ttl_short_seconds} > "
                f"{self.benchmark_ttl_long_seconds})"
            )
        return self

    @model_validator(mode="after")
    def validate_production_endpoints(self) -> "Settings":
        """Production deployments only fetch rates over HTTPS."""
        if self.is_production:
            for name in ("fx_current_url", "fx_historical_url"):
                if not getattr(self, name).lower().startswith("https://"):
                    raise ValueError(f"{name.upper()} must use https in production")
        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


# Create single instance
settings = Settings()
