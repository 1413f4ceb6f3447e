"""
Ingestion filter configuration.

Rules are supplied as JSON, e.g.
INGESTION_RULES='[{"path_prefix": "input/", "suffix": ".json"}]'

Dependencies: pydantic, pydantic_settings
System role: Admission rules for the ingestion boundary
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from jobcore.models.ingestion import IngestionRule


class IngestionSettings(BaseSettings):
    """Ingestion admission rules."""

    model_config = SettingsConfigDict(
        env_prefix="INGESTION_",
        case_sensitive=False,
        extra="ignore",
    )

    rules: list[IngestionRule] = Field(
        default_factory=lambda: [IngestionRule(path_prefix="input/", suffix=".json")],
        description="OR-combined admission rules",
    )
