"""
Executor configuration.

Dependencies: pydantic, pydantic_settings
System role: Outer execution bound and stale-job sweep thresholds
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ExecutorSettings(BaseSettings):
    """Long-running executor and reaper settings."""

    model_config = SettingsConfigDict(
        env_prefix="EXECUTOR_",
        case_sensitive=False,
        extra="ignore",
    )

    max_execution_seconds: float = Field(
        default=3600.0,
        gt=0,
        description="Outer bound after which a running job is force-failed",
    )
    error_message_max_length: int = Field(
        default=500,
        ge=16,
        description="Error detail messages are truncated to this length",
    )
    stale_grace_seconds: float = Field(
        default=300.0,
        ge=0,
        description="Extra slack past the outer bound before a RUNNING job is reaped",
    )
    pending_redispatch_seconds: float = Field(
        default=600.0,
        gt=0,
        description="Age after which a PENDING job is re-published to the task queue",
    )
    reaper_batch_limit: int = Field(default=100, ge=1, description="Jobs examined per sweep")
