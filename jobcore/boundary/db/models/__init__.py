"""ORM models."""

from jobcore.boundary.db.models.ingested_record_model import IngestedRecordModel
from jobcore.boundary.db.models.job_model import JobModel, JobStatus

__all__ = ["IngestedRecordModel", "JobModel", "JobStatus"]
