"""
S3 results bucket configuration.

Settings for job result artifact storage and presigned retrieval handles.

Dependencies: pydantic_settings
System role: Result Store bucket configuration
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class S3ResultsSettings(BaseSettings):
    """Settings for the S3 results bucket."""

    model_config = SettingsConfigDict(
        env_prefix="S3_RESULTS_",
        case_sensitive=False,
        extra="ignore",
    )

    bucket: str = Field(
        default="jobcore-dev-results",
        description="S3 bucket for job result artifacts",
    )
    region: str = Field(
        default="ap-southeast-2",
        description="AWS region for S3 bucket",
    )
    key_prefix: str = Field(
        default="results",
        description="Key prefix under which result artifacts are written",
    )
    presigned_url_expiry: int = Field(
        default=3600,
        description="Result handle expiry in seconds (default 1 hour)",
    )
