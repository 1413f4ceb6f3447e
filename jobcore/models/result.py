"""
Result artifact schemas.

Dependencies: pydantic
System role: Result Store contracts
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ResultArtifact(BaseModel):
    """Immutable output payload of a completed job."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(..., description="Storage key in the results bucket")
    size: int = Field(..., ge=0)
    content_sha256: str | None = None
    created_at: datetime
    job_id: uuid.UUID | None = None


class ResultHandle(BaseModel):
    """Time-bounded pointer to a result artifact."""

    url: str
    expires_at: datetime
