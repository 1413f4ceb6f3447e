"""
Stale job sweep.

Recovers jobs whose executor vanished: RUNNING jobs past the outer
execution bound are failed, PENDING jobs that never got claimed are
handed to the executor again.

Dependencies: jobcore.core.job_ledger, jobcore.boundary.queue
System role: Periodic recovery for lost executor invocations
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from jobcore.boundary.queue.base import TaskPublisher
from jobcore.core.exceptions import InvalidTransition, StorageUnavailable
from jobcore.core.job_ledger import JobLedger
from jobcore.models.job import ErrorDetail, JobStatus, JobTask

logger = logging.getLogger(__name__)


@dataclass
class ReaperReport:
    """Jobs touched by one sweep."""

    failed: list[UUID] = field(default_factory=list)
    redispatched: list[UUID] = field(default_factory=list)
    errors: int = 0


class StaleJobReaper:
    """Fail abandoned RUNNING jobs and re-publish stuck PENDING ones."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        publisher: TaskPublisher,
        max_execution_seconds: float = 3600.0,
        stale_grace_seconds: float = 300.0,
        pending_redispatch_seconds: float = 600.0,
        batch_limit: int = 100,
    ) -> None:
        self._session_factory = session_factory
        self._publisher = publisher
        self._running_cutoff = timedelta(seconds=max_execution_seconds + stale_grace_seconds)
        self._pending_cutoff = timedelta(seconds=pending_redispatch_seconds)
        self._batch_limit = batch_limit

    async def sweep(self, now: datetime | None = None) -> ReaperReport:
        """
        Run one sweep.

        Args:
            now: Reference time, defaults to the current UTC time

        Returns:
            ReaperReport: Failed and re-dispatched job IDs
        """
        now = now or datetime.now(timezone.utc)
        report = ReaperReport()

        async with self._session_factory() as session:
            ledger = JobLedger(session)
            await self._fail_abandoned(ledger, now - self._running_cutoff, report)
            await self._redispatch_pending(ledger, now - self._pending_cutoff, report)

        logger.info(
            "%s:sweep - Sweep finished",
            __name__,
            extra={
                "failed": len(report.failed),
                "redispatched": len(report.redispatched),
                "errors": report.errors,
            },
        )
        return report

    async def _fail_abandoned(
        self, ledger: JobLedger, cutoff: datetime, report: ReaperReport
    ) -> None:
        stale = await ledger.find_stale(JobStatus.RUNNING, cutoff, limit=self._batch_limit)
        for job in stale:
            error = ErrorDetail(
                error_class="ExecutionAbandoned",
                message="Execution exceeded its outer bound without reporting a result",
            )
            try:
                await ledger.transition(job.id, JobStatus.FAILED, error=error)
            except InvalidTransition:
                # Finished between the scan and the update.
                continue
            report.failed.append(job.id)
            logger.warning(
                "%s:_fail_abandoned - Abandoned job failed",
                __name__,
                extra={"job_id": str(job.id), "updated_at": job.updated_at.isoformat()},
            )

    async def _redispatch_pending(
        self, ledger: JobLedger, cutoff: datetime, report: ReaperReport
    ) -> None:
        stale = await ledger.find_stale(JobStatus.PENDING, cutoff, limit=self._batch_limit)
        for job in stale:
            try:
                await self._publisher.publish(JobTask(job_id=job.id))
            except StorageUnavailable as e:
                report.errors += 1
                logger.error(
                    "%s:_redispatch_pending - Republish failed",
                    __name__,
                    extra={"job_id": str(job.id), "error": e.message},
                )
                continue
            await ledger.touch(job.id, JobStatus.PENDING)
            report.redispatched.append(job.id)
