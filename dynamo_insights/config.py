from functools import lru_cache
from typing import ClassVar

from pydantic_settings import BaseSettings, SettingsConfigDict

from dynamo_insights.stats.models import PricingConfig, StatsConfig, Thresholds


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # Collection
    stats_enabled: bool = True
    stats_sample_rate: float = 1.0

    # Recommendation thresholds
    slow_query_ms: float = 1000
    high_read_units: float = 100
    high_write_units: float = 100

    # Illustrative pricing used by the capacity mode estimate (USD)
    provisioned_read_unit_hour: float = 0.00013
    provisioned_write_unit_hour: float = 0.00065
    on_demand_read_per_million: float = 0.25
    on_demand_write_per_million: float = 1.25
    hours_per_month: int = 730

    # Diagnostics API
    api_host: str = "127.0.0.1"
    api_port: int = 8000

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    def to_stats_config(self) -> StatsConfig:
        return StatsConfig(
            enabled=self.stats_enabled,
            sample_rate=self.stats_sample_rate,
            thresholds=Thresholds(
                slow_query_ms=self.slow_query_ms,
                high_read_units=self.high_read_units,
                high_write_units=self.high_write_units,
            ),
        )

    def to_pricing_config(self) -> PricingConfig:
        return PricingConfig(
            provisioned_read_unit_hour=self.provisioned_read_unit_hour,
            provisioned_write_unit_hour=self.provisioned_write_unit_hour,
            on_demand_read_per_million=self.on_demand_read_per_million,
            on_demand_write_per_million=self.on_demand_write_per_million,
            hours_per_month=self.hours_per_month,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Lazily load and cache settings. Fails at first call, not at import time."""
    return Settings()
