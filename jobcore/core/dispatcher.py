"""
Query Dispatcher.

Accepts a submission, records a PENDING job and hands the job to the
executor through a task publisher. Never waits for execution.

Dependencies: pydantic, jobcore.core.job_ledger, jobcore.boundary.queue
System role: Synchronous entry point of the async job core
"""

import logging
from typing import Any
from uuid import UUID

from pydantic import ValidationError

from jobcore.boundary.queue.base import TaskPublisher
from jobcore.core.exceptions import InvalidPayload
from jobcore.core.job_ledger import JobLedger
from jobcore.models.job import CallerIdentity, JobTask, QuerySubmission

logger = logging.getLogger(__name__)


class QueryDispatcher:
    """Validate, record, hand off."""

    def __init__(self, ledger: JobLedger, publisher: TaskPublisher) -> None:
        """
        Initialize dispatcher.

        Args:
            ledger: Job ledger for the request's session
            publisher: Executor task publisher
        """
        self._ledger = ledger
        self._publisher = publisher

    @staticmethod
    def validate(payload: dict[str, Any]) -> QuerySubmission:
        """
        Check a raw payload against the submission contract.

        Raises:
            InvalidPayload: Schema or semantic validation failed
        """
        try:
            return QuerySubmission.model_validate(payload)
        except ValidationError as e:
            errors = [
                {"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]}
                for err in e.errors()
            ]
            raise InvalidPayload("Invalid query submission", errors=errors) from e

    async def submit(self, caller: CallerIdentity, payload: dict[str, Any]) -> UUID:
        """
        Submit a query job.

        Validation happens before anything is written, so a rejected payload
        leaves no orphan PENDING job.

        Args:
            caller: Verified caller identity
            payload: Raw submission payload

        Returns:
            UUID: Job ID for polling

        Raises:
            InvalidPayload: Submission rejected
            StorageUnavailable: Ledger or task queue unavailable
        """
        submission = self.validate(payload)
        job_id = await self._ledger.create(caller.subject, submission.model_dump())
        message_id = await self._publisher.publish(JobTask(job_id=job_id))

        logger.info(
            "%s:submit - Job dispatched",
            __name__,
            extra={"job_id": str(job_id), "owner_id": caller.subject, "task_message_id": message_id},
        )
        return job_id
