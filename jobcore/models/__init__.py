"""Pydantic schemas shared by the API, workers and core services."""

from jobcore.models.ingestion import (
    Batch,
    BatchTrigger,
    DeadLetter,
    DeliveryEnvelope,
    EventDescriptor,
    IngestedRecord,
    IngestionRule,
    ItemOutcome,
    ItemStatus,
)
from jobcore.models.job import (
    CallerIdentity,
    ErrorDetail,
    Job,
    JobListResponse,
    JobStatus,
    JobStatusResponse,
    JobSummary,
    JobTask,
    QuerySubmission,
    SubmitQueryRequest,
    SubmitQueryResponse,
)
from jobcore.models.result import ResultArtifact, ResultHandle

__all__ = [
    "Batch",
    "BatchTrigger",
    "CallerIdentity",
    "DeadLetter",
    "DeliveryEnvelope",
    "ErrorDetail",
    "EventDescriptor",
    "IngestedRecord",
    "IngestionRule",
    "ItemOutcome",
    "ItemStatus",
    "Job",
    "JobListResponse",
    "JobStatus",
    "JobStatusResponse",
    "JobSummary",
    "JobTask",
    "QuerySubmission",
    "ResultArtifact",
    "ResultHandle",
    "SubmitQueryRequest",
    "SubmitQueryResponse",
]
