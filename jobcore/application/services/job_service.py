"""
Job service orchestrator.

Answers status polls and listings for the HTTP API: reads through the
ledger's ownership check, then attaches a retrieval handle for completed
jobs.

Dependencies: jobcore.core.job_ledger, jobcore.core.result_store
System role: Job status reporting
"""

from uuid import UUID

from jobcore.core.job_ledger import JobLedger
from jobcore.core.result_store import ResultStore
from jobcore.models.job import CallerIdentity, JobListResponse, JobStatus, JobStatusResponse


class JobService:
    """
    Job service orchestrator.

    Provides the polling view over the Job Ledger.
    """

    def __init__(self, ledger: JobLedger, result_store: ResultStore) -> None:
        """
        Initialize job service.

        Args:
            ledger: Job ledger bound to the request's session
            result_store: Result store for retrieval handles
        """
        self.ledger = ledger
        self.result_store = result_store

    async def get_job_status(self, job_id: UUID, caller: CallerIdentity) -> JobStatusResponse:
        """
        Get job status details for polling.

        Args:
            job_id: Job UUID
            caller: Verified caller identity

        Returns:
            JobStatusResponse: Status, plus a result handle once COMPLETED or
            the error detail once FAILED

        Raises:
            JobNotFound: Job doesn't exist
            Forbidden: Caller may not read this job
        """
        job = await self.ledger.get(job_id, caller)
        handle = None
        if job.status == JobStatus.COMPLETED:
            handle = self.result_store.handle_for(job)

        return JobStatusResponse(
            job_id=job.id,
            status=job.status,
            result_handle=handle,
            error_detail=job.error_detail,
            created_at=job.created_at,
            updated_at=job.updated_at,
        )

    async def list_jobs(
        self,
        caller: CallerIdentity,
        limit: int = 50,
        offset: int = 0,
    ) -> JobListResponse:
        """List the caller's own jobs, newest first."""
        items = await self.ledger.list(caller.subject, limit=limit, offset=offset)
        return JobListResponse(items=items, limit=limit, offset=offset)
