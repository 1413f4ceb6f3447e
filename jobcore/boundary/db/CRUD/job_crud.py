"""
Job CRUD operations.

Provides persistence for JobModel with the guarded compare-and-swap
status update the ledger builds its lifecycle on.

Dependencies: sqlalchemy, jobcore.boundary.db.models.job_model
System role: Job persistence operations for async task tracking
"""

from datetime import datetime
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from jobcore.boundary.db.base import utcnow
from jobcore.boundary.db.models.job_model import JobModel, JobStatus
from jobcore.boundary.db.CRUD.base_crud import BaseCRUD


class JobCRUD(BaseCRUD[JobModel]):
    """
    CRUD operations for JobModel.

    Extends BaseCRUD with owner listing, stale-job lookup and guarded
    status updates.
    """

    def __init__(self) -> None:
        """Initialize JobCRUD with JobModel."""
        super().__init__(JobModel)

    async def list_by_owner(
        self,
        session: AsyncSession,
        owner_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[JobModel]:
        """
        Retrieve an owner's jobs, newest first.

        Args:
            session: Async database session
            owner_id: Caller identity owning the jobs
            limit: Maximum number of jobs to return
            offset: Number of jobs to skip

        Returns:
            Sequence of JobModels
        """
        stmt = (
            select(JobModel)
            .where(JobModel.owner_id == owner_id)
            .order_by(JobModel.created_at.desc(), JobModel.id)
            .offset(offset)
            .limit(limit)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def compare_and_set_status(
        self,
        session: AsyncSession,
        id: UUID,
        expected: JobStatus,
        new: JobStatus,
        **fields: Any,
    ) -> bool:
        """
        Move a job from expected to new status in a single guarded statement.

        Only one concurrent caller can win: the UPDATE matches zero rows once
        another writer has already changed the status.

        Args:
            session: Async database session
            id: Job UUID
            expected: Status the row must currently have
            new: Target status
            **fields: Extra columns to set together with the status

        Returns:
            True if this call changed the row, False otherwise
        """
        stmt = (
            update(JobModel)
            .where(JobModel.id == id, JobModel.status == expected)
            .values(status=new, updated_at=utcnow(), **fields)
            .returning(JobModel.id)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def find_stale(
        self,
        session: AsyncSession,
        status: JobStatus,
        updated_before: datetime,
        limit: int = 100,
    ) -> Sequence[JobModel]:
        """
        Retrieve jobs stuck in a status since before a cutoff.

        Args:
            session: Async database session
            status: Status to inspect (RUNNING or PENDING)
            updated_before: Cutoff for updated_at
            limit: Maximum number of jobs to return

        Returns:
            Sequence of JobModels, oldest first
        """
        stmt = (
            select(JobModel)
            .where(JobModel.status == status, JobModel.updated_at < updated_before)
            .order_by(JobModel.updated_at)
            .limit(limit)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def touch(self, session: AsyncSession, id: UUID, status: JobStatus) -> bool:
        """
        Refresh updated_at without changing status.

        Args:
            session: Async database session
            id: Job UUID
            status: Status the row must still have

        Returns:
            True if the row was touched
        """
        return await self.compare_and_set_status(session, id, status, status)


job_crud = JobCRUD()
