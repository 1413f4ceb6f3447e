"""
Database boundary layer: ORM models, CRUD operations, and connection management.

Exports:
  - Base, UUIDMixin, TimestampMixin: Model building blocks
  - get_async_engine(), get_async_session_factory(), get_async_db(): Async connection management
  - JobModel, IngestedRecordModel: Persistent entities
  - job_crud, ingested_record_crud: CRUD operation singletons

Dependencies: sqlalchemy, jobcore.configs
System role: Database adapter for the job ledger and ingestion target
"""

from jobcore.boundary.db.base import Base, TimestampMixin, UUIDMixin
from jobcore.boundary.db.connection import (
    get_async_db,
    get_async_engine,
    get_async_session_factory,
)
from jobcore.boundary.db.models.ingested_record_model import IngestedRecordModel
from jobcore.boundary.db.models.job_model import JobModel, JobStatus
from jobcore.boundary.db.CRUD import (
    BaseCRUD,
    IngestedRecordCRUD,
    JobCRUD,
    ingested_record_crud,
    job_crud,
)

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    # Connection
    "get_async_db",
    "get_async_engine",
    "get_async_session_factory",
    # Models
    "IngestedRecordModel",
    "JobModel",
    "JobStatus",
    # CRUD classes
    "BaseCRUD",
    "IngestedRecordCRUD",
    "JobCRUD",
    # CRUD singletons
    "ingested_record_crud",
    "job_crud",
]
