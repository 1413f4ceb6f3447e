"""
Query engine configuration.

Dependencies: pydantic, pydantic_settings
System role: Backing data engine connection for the executor
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class QueryEngineSettings(BaseSettings):
    """Data engine the executor runs submitted queries against."""

    model_config = SettingsConfigDict(
        env_prefix="QUERY_ENGINE_",
        case_sensitive=False,
        extra="ignore",
    )

    url: str | None = Field(
        default=None,
        description="Async SQLAlchemy URL of the data engine; required and distinct from the ledger database",
    )
    max_rows: int = Field(default=100_000, ge=1, description="Rows kept per result")
