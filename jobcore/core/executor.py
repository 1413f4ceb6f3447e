"""
Long-Running Executor.

Runs one job to completion independently of any client connection. Claims
the job through the ledger's guarded transition, executes the query under
an outer time bound, stores the result and records the terminal status.
Duplicate invocations for the same job are expected and absorbed.

Dependencies: sqlalchemy, jobcore.core.job_ledger, jobcore.core.result_store
System role: Execution half of the async job core
"""

import asyncio
import enum
import json
import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from jobcore.boundary.engine.sql_engine import QueryEngine, QueryResult
from jobcore.core.exceptions import InvalidTransition, JobNotFound
from jobcore.core.job_ledger import JobLedger, TransitionResult
from jobcore.core.result_store import ResultStore
from jobcore.models.job import ErrorDetail, JobStatus, QuerySubmission, truncate

logger = logging.getLogger(__name__)


class ExecutionOutcome(str, enum.Enum):
    """What one executor invocation did."""

    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class LongRunningExecutor:
    """
    Execute jobs handed off by the dispatcher.

    Each run opens its own session, so concurrent runs share nothing but
    the ledger rows they race on.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        result_store: ResultStore,
        engine: QueryEngine,
        max_execution_seconds: float = 3600.0,
        error_message_max_length: int = 500,
    ) -> None:
        """
        Initialize executor.

        Args:
            session_factory: Factory for ledger sessions
            result_store: Destination for result artifacts
            engine: Backing data engine
            max_execution_seconds: Outer bound on one execution
            error_message_max_length: Truncation length for error messages
        """
        self._session_factory = session_factory
        self._result_store = result_store
        self._engine = engine
        self._max_execution_seconds = max_execution_seconds
        self._error_max = error_message_max_length

    async def run(self, job_id: UUID) -> ExecutionOutcome:
        """
        Execute one job.

        Args:
            job_id: Job to execute

        Returns:
            ExecutionOutcome: COMPLETED, FAILED, or SKIPPED when another
            invocation already claimed or finished the job

        Raises:
            StorageUnavailable: Ledger unavailable; the invocation should be retried
        """
        async with self._session_factory() as session:
            ledger = JobLedger(session)

            try:
                claim = await ledger.transition(job_id, JobStatus.RUNNING)
            except (InvalidTransition, JobNotFound) as e:
                logger.info(
                    "%s:run - Claim lost, skipping",
                    __name__,
                    extra={"job_id": str(job_id), "reason": e.message},
                )
                return ExecutionOutcome.SKIPPED
            if claim is TransitionResult.ALREADY_APPLIED:
                return await self._settle_stored_result(ledger, job_id)

            job = await ledger.get_unchecked(job_id)
            # No transaction may stay open while the query runs
            await ledger.end_read()
            logger.info("%s:run - Job claimed", __name__, extra={"job_id": str(job_id)})

            try:
                submission = QuerySubmission.model_validate(job.payload)
                result = await asyncio.wait_for(
                    self._engine.execute(submission),
                    timeout=self._max_execution_seconds,
                )
                artifact = await self._result_store.write(
                    job_id,
                    job.owner_id,
                    self._serialize(result),
                )
            except asyncio.TimeoutError:
                error = ErrorDetail(
                    error_class="ExecutionTimeout",
                    message=truncate(
                        f"Execution exceeded {self._max_execution_seconds:g} seconds",
                        self._error_max,
                    ),
                )
                return await self._fail(ledger, job_id, error)
            except Exception as e:
                return await self._fail(
                    ledger, job_id, ErrorDetail.from_exception(e, self._error_max)
                )

            await ledger.transition(job_id, JobStatus.COMPLETED, result=artifact)
            logger.info(
                "%s:run - Job completed",
                __name__,
                extra={"job_id": str(job_id), "result_ref": artifact.key, "rows": len(result.rows)},
            )
            return ExecutionOutcome.COMPLETED

    async def _settle_stored_result(self, ledger: JobLedger, job_id: UUID) -> ExecutionOutcome:
        """
        Handle a redelivered task for a job that is already RUNNING.

        Either another invocation is still executing it, or an earlier one
        stored the artifact but could not record COMPLETED. In the second
        case the stored artifact is recorded now instead of waiting for the
        stale sweep to fail the job. The query is never run again.
        """
        job = await ledger.get_unchecked(job_id)
        await ledger.end_read()
        artifact = await self._result_store.find(job_id, job.owner_id)
        if artifact is None:
            logger.info(
                "%s:run - Job already running, skipping",
                __name__,
                extra={"job_id": str(job_id)},
            )
            return ExecutionOutcome.SKIPPED

        try:
            await ledger.transition(job_id, JobStatus.COMPLETED, result=artifact)
        except InvalidTransition as e:
            logger.info(
                "%s:run - Job settled elsewhere, skipping",
                __name__,
                extra={"job_id": str(job_id), "reason": e.message},
            )
            return ExecutionOutcome.SKIPPED

        logger.info(
            "%s:run - Stored result recorded for running job",
            __name__,
            extra={"job_id": str(job_id), "result_ref": artifact.key},
        )
        return ExecutionOutcome.SKIPPED

    async def _fail(self, ledger: JobLedger, job_id: UUID, error: ErrorDetail) -> ExecutionOutcome:
        logger.warning(
            "%s:run - Job failed",
            __name__,
            extra={"job_id": str(job_id), "error_class": error.error_class},
        )
        await ledger.transition(job_id, JobStatus.FAILED, error=error)
        return ExecutionOutcome.FAILED

    @staticmethod
    def _serialize(result: QueryResult) -> bytes:
        return json.dumps(
            {"columns": result.columns, "rows": result.rows, "truncated": result.truncated},
            default=str,
        ).encode("utf-8")
