"""
Job Ledger.

Durable record of every job and its lifecycle. Transitions are guarded
compare-and-swap updates, so concurrent executors race safely against the
database instead of against in-process state, and repeated completion
signals are absorbed as no-ops.

Dependencies: sqlalchemy, jobcore.boundary.db, jobcore.core.exceptions
System role: Single source of truth for "did this request run, and what happened"
"""

import enum
import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from jobcore.boundary.db.CRUD.job_crud import job_crud
from jobcore.boundary.db.models.job_model import JobModel, JobStatus
from jobcore.core.exceptions import Forbidden, InvalidTransition, JobNotFound, StorageUnavailable
from jobcore.models.job import CallerIdentity, ErrorDetail, Job, JobSummary
from jobcore.models.result import ResultArtifact

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[JobStatus, JobStatus] = {
    JobStatus.RUNNING: JobStatus.PENDING,
    JobStatus.COMPLETED: JobStatus.RUNNING,
    JobStatus.FAILED: JobStatus.RUNNING,
}


class TransitionResult(str, enum.Enum):
    """
    Outcome of a successful transition call.

    APPLIED: This call moved the job into the target status
    ALREADY_APPLIED: The job was already in the target status with the same data
    """

    APPLIED = "applied"
    ALREADY_APPLIED = "already_applied"


class JobLedger:
    """
    Job Ledger bound to one database session.

    Every write commits before returning so the new state is visible to
    other workers and to pollers immediately.
    """

    def __init__(self, db: AsyncSession) -> None:
        """
        Initialize ledger.

        Args:
            db: AsyncSession for ledger operations
        """
        self.db = db

    async def create(self, owner_id: str, payload: dict[str, Any]) -> UUID:
        """
        Record a new PENDING job.

        Args:
            owner_id: Verified identity of the submitting caller
            payload: Validated submission

        Returns:
            UUID: New job ID

        Raises:
            StorageUnavailable: Store did not accept the write
        """
        try:
            job = await job_crud.create(
                self.db,
                owner_id=owner_id,
                payload=payload,
                status=JobStatus.PENDING,
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self._rollback()
            logger.error("%s:create - %s: %s", __name__, type(e).__name__, e)
            raise StorageUnavailable(f"Failed to create job: {e}", operation="create") from e

        logger.info(
            "%s:create - Job created",
            __name__,
            extra={"job_id": str(job.id), "owner_id": owner_id},
        )
        return job.id

    async def get(self, job_id: UUID, caller: CallerIdentity) -> Job:
        """
        Read a job on behalf of a caller.

        Args:
            job_id: Job UUID
            caller: Verified caller identity

        Returns:
            Job: Current job record

        Raises:
            JobNotFound: No such job
            Forbidden: Caller is neither the owner nor an administrator
            StorageUnavailable: Store read failed
        """
        job = await self._load(job_id)
        if job.owner_id != caller.subject and not caller.is_admin:
            logger.warning(
                "%s:get - Forbidden read",
                __name__,
                extra={"job_id": str(job_id), "caller_id": caller.subject},
            )
            raise Forbidden(str(job_id), caller.subject)
        return Job.model_validate(job)

    async def get_unchecked(self, job_id: UUID) -> Job:
        """
        Read a job without an ownership check. For executors and sweeps.

        Raises:
            JobNotFound: No such job
            StorageUnavailable: Store read failed
        """
        return Job.model_validate(await self._load(job_id))

    async def transition(
        self,
        job_id: UUID,
        new_status: JobStatus,
        result: ResultArtifact | None = None,
        error: ErrorDetail | None = None,
    ) -> TransitionResult:
        """
        Move a job along its lifecycle.

        Allowed edges: PENDING->RUNNING, RUNNING->COMPLETED, RUNNING->FAILED.
        COMPLETED requires a result artifact, FAILED requires an error detail,
        RUNNING takes neither. Repeating a transition that already happened
        with identical data returns ALREADY_APPLIED without touching the row.

        Args:
            job_id: Job UUID
            new_status: Target status
            result: Result artifact (COMPLETED only)
            error: Error detail (FAILED only)

        Returns:
            TransitionResult: APPLIED or ALREADY_APPLIED

        Raises:
            InvalidTransition: Edge not allowed, or arguments don't fit the target
            JobNotFound: No such job
            StorageUnavailable: Store write failed
        """
        expected = ALLOWED_TRANSITIONS.get(new_status)
        if expected is None:
            raise InvalidTransition(str(job_id), None, new_status.value, "no edge leads here")
        fields = self._fields_for(job_id, new_status, result, error)

        try:
            changed = await job_crud.compare_and_set_status(
                self.db, job_id, expected, new_status, **fields
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self._rollback()
            logger.error("%s:transition - %s: %s", __name__, type(e).__name__, e)
            raise StorageUnavailable(f"Failed to transition job: {e}", operation="transition") from e

        if changed:
            logger.info(
                "%s:transition - Job transitioned",
                __name__,
                extra={"job_id": str(job_id), "from": expected.value, "to": new_status.value},
            )
            return TransitionResult.APPLIED

        current = await self._load(job_id)
        if current.status == new_status and all(
            getattr(current, name) == value for name, value in fields.items()
        ):
            logger.info(
                "%s:transition - Repeated transition ignored",
                __name__,
                extra={"job_id": str(job_id), "status": new_status.value},
            )
            return TransitionResult.ALREADY_APPLIED

        raise InvalidTransition(str(job_id), current.status.value, new_status.value)

    async def find_stale(
        self,
        status: JobStatus,
        updated_before: datetime,
        limit: int = 100,
    ) -> list[Job]:
        """
        Jobs that have sat in a status since before the cutoff.

        Raises:
            StorageUnavailable: Store read failed
        """
        try:
            jobs = await job_crud.find_stale(self.db, status, updated_before, limit=limit)
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"Failed to scan stale jobs: {e}", operation="find_stale") from e
        return [Job.model_validate(job) for job in jobs]

    async def end_read(self) -> None:
        """
        Close the transaction a read opened, returning its connection to the pool.

        Raises:
            StorageUnavailable: Store rejected the commit
        """
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self._rollback()
            raise StorageUnavailable(f"Failed to end read: {e}", operation="end_read") from e

    async def touch(self, job_id: UUID, status: JobStatus) -> bool:
        """
        Refresh updated_at of a job still in the given status.

        Raises:
            StorageUnavailable: Store write failed
        """
        try:
            touched = await job_crud.touch(self.db, job_id, status)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self._rollback()
            raise StorageUnavailable(f"Failed to touch job: {e}", operation="touch") from e
        return touched

    @staticmethod
    def _fields_for(
        job_id: UUID,
        new_status: JobStatus,
        result: ResultArtifact | None,
        error: ErrorDetail | None,
    ) -> dict[str, Any]:
        if new_status == JobStatus.COMPLETED:
            if result is None or error is not None:
                raise InvalidTransition(
                    str(job_id), None, new_status.value, "requires a result and no error"
                )
            return {
                "result_ref": result.key,
                "result_size": result.size,
                "result_sha256": result.content_sha256,
            }
        if new_status == JobStatus.FAILED:
            if error is None or result is not None:
                raise InvalidTransition(
                    str(job_id), None, new_status.value, "requires an error and no result"
                )
            return {"error_detail": error.model_dump()}
        if result is not None or error is not None:
            raise InvalidTransition(
                str(job_id), None, new_status.value, "takes neither result nor error"
            )
        return {}

    async def _load(self, job_id: UUID) -> JobModel:
        try:
            job = await job_crud.get_by_id(self.db, job_id)
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"Failed to read job: {e}", operation="get") from e
        if job is None:
            raise JobNotFound(str(job_id))
        return job

    async def _rollback(self) -> None:
        try:
            await self.db.rollback()
        except SQLAlchemyError as e:
            logger.error("%s:_rollback - %s: %s", __name__, type(e).__name__, e)

    # Defined last: the method name shadows the builtin inside the class body.
    async def list(self, owner_id: str, limit: int = 50, offset: int = 0) -> list[JobSummary]:
        """
        List an owner's jobs, newest first.

        Args:
            owner_id: Caller identity
            limit: Page size
            offset: Items to skip

        Returns:
            list[JobSummary]: Page of summaries

        Raises:
            StorageUnavailable: Store read failed
        """
        try:
            jobs = await job_crud.list_by_owner(self.db, owner_id, limit=limit, offset=offset)
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"Failed to list jobs: {e}", operation="list") from e
        return [JobSummary.model_validate(job) for job in jobs]
