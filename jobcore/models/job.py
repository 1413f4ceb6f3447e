"""
Job domain models and schemas.

Submission payloads, caller identity, error details and the
request/response schemas for job tracking.

Dependencies: pydantic
System role: Job API contracts
"""

import enum
import re
import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from jobcore.models.result import ResultHandle

MAX_QUERY_LENGTH = 20_000

_READ_ONLY_START = re.compile(r"^\s*(select|with)\b", re.IGNORECASE)

# String literals, quoted identifiers and comments, blanked before the statement checks
_QUOTED_OR_COMMENT = re.compile(r"'(?:[^']|'')*'|\"(?:[^\"]|\"\")*\"|--[^\n]*|/\*.*?\*/", re.DOTALL)


class JobStatus(str, enum.Enum):
    """
    Job lifecycle states.

    PENDING: Job recorded, task handed to the executor queue
    RUNNING: An executor attempt has claimed the job
    COMPLETED: Result artifact written; result_ref is set
    FAILED: Execution failed; error_detail is set
    """

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class CallerIdentity(BaseModel):
    """Verified caller handed over by the identity provider."""

    model_config = ConfigDict(frozen=True)

    subject: str = Field(..., min_length=1)
    roles: frozenset[str] = frozenset()

    @property
    def is_admin(self) -> bool:
        return "admin" in self.roles


class QuerySubmission(BaseModel):
    """Schema/semantic contract for a query job payload."""

    model_config = ConfigDict(extra="forbid")

    query: str = Field(..., min_length=1, max_length=MAX_QUERY_LENGTH)
    parameters: dict[str, str | int | float | bool | None] = Field(default_factory=dict)

    @field_validator("query")
    @classmethod
    def _single_read_only_statement(cls, value: str) -> str:
        stripped = value.strip().rstrip(";").strip()
        if not stripped:
            raise ValueError("query must not be blank")
        code = _QUOTED_OR_COMMENT.sub(" ", stripped)
        if "'" in code or '"' in code or "/*" in code:
            raise ValueError("query has an unterminated literal or comment")
        if ";" in code:
            raise ValueError("query must be a single statement")
        if not _READ_ONLY_START.match(code):
            raise ValueError("query must be a read-only SELECT or WITH statement")
        return stripped


class ErrorDetail(BaseModel):
    """
    Caller-safe failure description.

    Holds the upstream error class and a truncated message, never a traceback.
    """

    model_config = ConfigDict(frozen=True)

    error_class: str
    message: str

    @classmethod
    def from_exception(cls, exc: BaseException, max_length: int = 500) -> "ErrorDetail":
        """Build from an exception, preferring the wrapped upstream error class when recorded."""
        details = getattr(exc, "details", None) or {}
        error_class = details.get("upstream_error") or type(exc).__name__
        message = getattr(exc, "message", None) or str(exc) or error_class
        return cls(error_class=error_class, message=truncate(message, max_length))


def truncate(text: str, max_length: int) -> str:
    """Cut text to max_length characters, marking the cut."""
    if len(text) <= max_length:
        return text
    marker = "...[truncated]"
    return text[: max(0, max_length - len(marker))] + marker


class JobTask(BaseModel):
    """Message handed from the dispatcher to the executor."""

    job_id: uuid.UUID


class Job(BaseModel):
    """Read model of a ledger entry."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    owner_id: str
    payload: dict[str, Any]
    status: JobStatus
    result_ref: str | None = None
    result_size: int | None = None
    result_sha256: str | None = None
    error_detail: ErrorDetail | None = None
    created_at: datetime
    updated_at: datetime


class JobSummary(BaseModel):
    """List entry for an owner's jobs."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    status: JobStatus
    created_at: datetime
    updated_at: datetime


class SubmitQueryRequest(BaseModel):
    """Request body for POST /jobs. Validated further by the dispatcher."""

    payload: dict[str, Any]


class SubmitQueryResponse(BaseModel):
    """Response for POST /jobs."""

    job_id: uuid.UUID
    status: JobStatus


class JobStatusResponse(BaseModel):
    """Response schema for job status polling."""

    job_id: uuid.UUID
    status: JobStatus
    result_handle: ResultHandle | None = None
    error_detail: ErrorDetail | None = None
    created_at: datetime
    updated_at: datetime


class JobListResponse(BaseModel):
    """Paginated job summaries."""

    items: list[JobSummary]
    limit: int
    offset: int
