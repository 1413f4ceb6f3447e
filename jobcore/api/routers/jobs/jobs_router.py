"""
Job API endpoints.

Routes:
- POST /jobs - Submit a query job
- GET /jobs - List the caller's jobs
- GET /jobs/{id} - Poll a job's status

Dependencies: jobcore.core.dispatcher, jobcore.application.services, jobcore.models
System role: Job submission and status HTTP API
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from jobcore.api.deps.dependencies import get_caller, get_job_service, get_query_dispatcher
from jobcore.application.services.job_service import JobService
from jobcore.core.dispatcher import QueryDispatcher
from jobcore.models.job import (
    CallerIdentity,
    JobListResponse,
    JobStatus,
    JobStatusResponse,
    SubmitQueryRequest,
    SubmitQueryResponse,
)

from .job_error_handling import handle_job_errors

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.post("", response_model=SubmitQueryResponse, status_code=status.HTTP_202_ACCEPTED)
@handle_job_errors
async def submit_job(
    request: SubmitQueryRequest,
    caller: CallerIdentity = Depends(get_caller),
    dispatcher: QueryDispatcher = Depends(get_query_dispatcher),
) -> SubmitQueryResponse:
    """
    Submit a query for asynchronous execution.

    Returns as soon as the job is recorded; poll GET /jobs/{id} for the outcome.

    Raises:
        HTTPException(422): Payload rejected, no job created
        HTTPException(503): Ledger or task queue unavailable
    """
    job_id = await dispatcher.submit(caller, request.payload)
    return SubmitQueryResponse(job_id=job_id, status=JobStatus.PENDING)


@router.get("", response_model=JobListResponse)
@handle_job_errors
async def list_jobs(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    caller: CallerIdentity = Depends(get_caller),
    job_service: JobService = Depends(get_job_service),
) -> JobListResponse:
    """List the caller's jobs, newest first."""
    return await job_service.list_jobs(caller, limit=limit, offset=offset)


@router.get("/{job_id}", response_model=JobStatusResponse)
@handle_job_errors
async def get_job_status(
    job_id: UUID,
    caller: CallerIdentity = Depends(get_caller),
    job_service: JobService = Depends(get_job_service),
) -> JobStatusResponse:
    """
    Get job status for polling.

    Completed jobs carry a time-limited result_handle; failed jobs carry
    error_detail with the upstream error class and a truncated message.

    Raises:
        HTTPException(403): Caller is not the owner
        HTTPException(404): Job not found
    """
    return await job_service.get_job_status(job_id, caller)
