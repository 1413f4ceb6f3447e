"""CRUD operations for database models."""

from jobcore.boundary.db.CRUD.base_crud import BaseCRUD
from jobcore.boundary.db.CRUD.ingested_record_crud import IngestedRecordCRUD, ingested_record_crud
from jobcore.boundary.db.CRUD.job_crud import JobCRUD, job_crud

__all__ = [
    "BaseCRUD",
    "IngestedRecordCRUD",
    "JobCRUD",
    "ingested_record_crud",
    "job_crud",
]
