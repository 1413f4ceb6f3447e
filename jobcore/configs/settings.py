"""
Unified application settings.

Aggregates all configuration modules into a single Settings class.
Provides dependency injection factory for FastAPI and workers.

Dependencies: All config modules
System role: Central configuration aggregator for the application
"""

from functools import lru_cache

from pydantic import Field, model_validator

from jobcore.configs.base import BaseSettings
from jobcore.configs.batch import BatchSettings
from jobcore.configs.channel import ChannelSettings
from jobcore.configs.database import DatabaseSettings
from jobcore.configs.executor import ExecutorSettings
from jobcore.configs.ingestion import IngestionSettings
from jobcore.configs.query_engine import QueryEngineSettings
from jobcore.configs.s3_results import S3ResultsSettings


class Settings(BaseSettings):
    """Unified application settings aggregating all config modules."""

    # Aggregated settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    s3_results: S3ResultsSettings = Field(default_factory=S3ResultsSettings)
    channel: ChannelSettings = Field(default_factory=ChannelSettings)
    batch: BatchSettings = Field(default_factory=BatchSettings)
    executor: ExecutorSettings = Field(default_factory=ExecutorSettings)
    ingestion: IngestionSettings = Field(default_factory=IngestionSettings)
    query_engine: QueryEngineSettings = Field(default_factory=QueryEngineSettings)

    @model_validator(mode="after")
    def _visibility_outlasts_window(self) -> "Settings":
        # Envelopes claimed early in a batch must stay hidden until the batch commits.
        if self.channel.visibility_timeout_seconds <= self.batch.window_seconds:
            raise ValueError(
                "channel.visibility_timeout_seconds must exceed batch.window_seconds "
                f"({self.channel.visibility_timeout_seconds} <= {self.batch.window_seconds})"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """
    Get application settings singleton.

    Returns Settings instance, cached for dependency injection.
    Environment variables loaded once at startup.

    Returns:
        Settings: Application settings instance

    Usage:
        from jobcore.configs import get_settings
        settings = get_settings()
    """
    return Settings()
