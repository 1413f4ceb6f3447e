"""
Batch applier configuration.

Dependencies: pydantic, pydantic_settings
System role: Batch formation and payload handling limits
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BatchSettings(BaseSettings):
    """Batch formation and payload validation settings."""

    model_config = SettingsConfigDict(
        env_prefix="BATCH_",
        case_sensitive=False,
        extra="ignore",
    )

    max_batch_size: int = Field(default=100, ge=1, le=1000, description="Size threshold")
    window_seconds: float = Field(default=55.0, gt=0, description="Time window threshold")
    receive_chunk_size: int = Field(
        default=10,
        ge=1,
        le=10,
        description="Envelopes requested per receive call",
    )
    payload_bucket: str = Field(
        default="jobcore-dev-ingest",
        description="Bucket holding the payloads referenced by descriptors",
    )
    payload_region: str = Field(default="ap-southeast-2", description="Payload bucket region")
    max_payload_bytes: int = Field(
        default=10 * 1024 * 1024,
        description="Payloads larger than this are rejected without fetching",
    )
    natural_key_field: str = Field(
        default="id",
        description="Payload field used as natural key when present",
    )
    idle_sleep_seconds: float = Field(
        default=1.0,
        description="Pause between empty batch cycles in the worker loop",
    )
