"""Service configuration, loaded from DISPUTES_* environment variables or a .env file."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = Field(default="sqlite:///./disputes.db", description="SQLAlchemy database URL")
    log_level: str = Field(default="INFO", description="Root log level")

    default_window_months: int = Field(default=6, ge=1, description="Trailing months used by reports")
    forecast_horizon_months: int = Field(default=3, ge=1, description="Months projected by the forecaster")
    anomaly_window_months: int = Field(default=12, ge=1, description="Trailing months scanned for anomalies")

    max_window_months: int = Field(default=60, ge=1, description="Upper bound for any monthly window")
    max_horizon_months: int = Field(default=24, ge=1, description="Upper bound for forecast horizons")
    max_categories: int = Field(default=50, ge=1, description="Upper bound for categories per time series")

    model_config = SettingsConfigDict(
        env_prefix="DISPUTES_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
