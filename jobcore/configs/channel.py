"""
Buffering channel configuration.

Makes visibility timeout, redelivery ceiling and queue endpoints explicit
settings instead of relying on platform defaults.

Dependencies: pydantic, pydantic_settings
System role: Queue/channel configuration for ingestion and task handoff
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ChannelSettings(BaseSettings):
    """SQS-backed channel configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CHANNEL_",
        case_sensitive=False,
        extra="ignore",
    )

    region: str = Field(default="ap-southeast-2", description="AWS region for SQS")
    ingestion_queue_url: str = Field(
        default="",
        description="Primary ingestion queue URL (empty selects the in-memory channel)",
    )
    dead_letter_queue_url: str = Field(
        default="",
        description="Dead-letter queue URL for envelopes that exhausted redelivery",
    )
    task_queue_url: str = Field(
        default="",
        description="Executor task queue URL (empty selects local in-process dispatch)",
    )

    visibility_timeout_seconds: int = Field(
        default=60,
        ge=1,
        description="Seconds a claimed envelope stays hidden from other consumers",
    )
    max_receive_count: int = Field(
        default=3,
        ge=1,
        description="Deliveries allowed before an envelope is diverted to dead-letter",
    )
    receive_wait_seconds: int = Field(
        default=20,
        ge=0,
        le=20,
        description="Long-poll wait per receive call",
    )
