"""
Job ORM model.

Durable ledger entry for one long-running query submission.
Status only moves PENDING -> RUNNING -> COMPLETED | FAILED; the CRUD layer
enforces that with guarded updates.

Dependencies: sqlalchemy, jobcore.boundary.db.base
System role: Single source of truth for job lifecycle state
"""

from sqlalchemy import Enum, Index, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from jobcore.boundary.db.base import Base, UUIDMixin, TimestampMixin
from jobcore.models.job import JobStatus


class JobModel(Base, UUIDMixin, TimestampMixin):
    """
    Job ORM model.

    Attributes:
        id: UUID primary key (auto-generated, never reused)
        owner_id: Verified identity of the submitting caller
        payload: Validated submission (query text and parameters)
        status: Current lifecycle state (PENDING/RUNNING/COMPLETED/FAILED)
        result_ref: Result Store key; set only when COMPLETED
        result_size: Artifact size in bytes; set only when COMPLETED
        result_sha256: Artifact content hash; set only when COMPLETED
        error_detail: {"error_class", "message"}; set only when FAILED
        created_at: Submission timestamp (UTC)
        updated_at: Last transition timestamp (UTC); used for staleness checks

    Workflow:
        1. Dispatcher inserts the row with status=PENDING and enqueues a task
        2. Executor claims it: PENDING -> RUNNING (single winner)
        3. Executor writes the artifact and sets COMPLETED, or sets FAILED
        4. Callers poll /jobs/{id}
    """

    __tablename__ = "jobs"
    __table_args__ = (
        Index("ix_jobs_owner_created", "owner_id", "created_at"),
        Index("ix_jobs_status_updated", "status", "updated_at"),
    )

    owner_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="Verified caller identity that owns the job",
    )

    payload: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )

    status: Mapped[JobStatus] = mapped_column(
        Enum(JobStatus, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=JobStatus.PENDING,
    )

    result_ref: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    result_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    result_sha256: Mapped[str | None] = mapped_column(String(64), nullable=True)

    error_detail: Mapped[dict | None] = mapped_column(
        JSON,
        nullable=True,
        doc="Structured failure description (error class + truncated message)",
    )
