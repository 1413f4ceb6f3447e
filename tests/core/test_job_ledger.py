"""
Test suite for the Job Ledger.

Runs against in-memory SQLite to exercise the guarded compare-and-swap
transitions end to end.

System role: Verification of job lifecycle rules
"""

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from jobcore.core.exceptions import Forbidden, InvalidTransition, JobNotFound, StorageUnavailable
from jobcore.core.job_ledger import JobLedger, TransitionResult
from jobcore.models.job import ErrorDetail, JobStatus
from jobcore.models.result import ResultArtifact


def _artifact(job_id: uuid.UUID, key: str = "results/user-1/a.json") -> ResultArtifact:
    return ResultArtifact(
        key=key,
        size=42,
        content_sha256="ab" * 32,
        created_at=datetime.now(timezone.utc),
        job_id=job_id,
    )


@pytest.fixture
def ledger(test_async_db: AsyncSession) -> JobLedger:
    return JobLedger(test_async_db)


class TestCreateAndGet:
    """create() and get()."""

    @pytest.mark.asyncio
    async def test_create_should_record_pending_job(self, ledger, owner, valid_payload) -> None:
        # Act
        job_id = await ledger.create(owner.subject, valid_payload)
        job = await ledger.get(job_id, owner)

        # Assert
        assert job.status == JobStatus.PENDING
        assert job.owner_id == owner.subject
        assert job.payload == valid_payload
        assert job.result_ref is None
        assert job.error_detail is None

    @pytest.mark.asyncio
    async def test_get_should_raise_forbidden_for_non_owner(self, ledger, owner, stranger) -> None:
        job_id = await ledger.create(owner.subject, {"query": "SELECT 1"})

        with pytest.raises(Forbidden):
            await ledger.get(job_id, stranger)

    @pytest.mark.asyncio
    async def test_get_should_allow_admin(self, ledger, owner, admin) -> None:
        job_id = await ledger.create(owner.subject, {"query": "SELECT 1"})

        job = await ledger.get(job_id, admin)

        assert job.id == job_id

    @pytest.mark.asyncio
    async def test_get_should_raise_not_found_for_unknown_job(self, ledger, owner) -> None:
        with pytest.raises(JobNotFound):
            await ledger.get(uuid.uuid4(), owner)

    @pytest.mark.asyncio
    async def test_create_should_raise_storage_unavailable_on_store_failure(self) -> None:
        # Arrange
        session = AsyncMock(spec=AsyncSession)
        session.flush.side_effect = OperationalError("INSERT", {}, Exception("connection refused"))
        ledger = JobLedger(session)

        # Act / Assert
        with pytest.raises(StorageUnavailable):
            await ledger.create("user-1", {"query": "SELECT 1"})
        session.rollback.assert_awaited()


class TestTransition:
    """transition() lifecycle guard."""

    @pytest.mark.asyncio
    async def test_full_lifecycle_should_complete_with_result(self, ledger, owner) -> None:
        job_id = await ledger.create(owner.subject, {"query": "SELECT 1"})
        artifact = _artifact(job_id)

        assert await ledger.transition(job_id, JobStatus.RUNNING) is TransitionResult.APPLIED
        assert (
            await ledger.transition(job_id, JobStatus.COMPLETED, result=artifact)
            is TransitionResult.APPLIED
        )

        job = await ledger.get(job_id, owner)
        assert job.status == JobStatus.COMPLETED
        assert job.result_ref == artifact.key
        assert job.result_size == 42
        assert job.result_sha256 == artifact.content_sha256

    @pytest.mark.asyncio
    async def test_repeated_completion_should_be_a_no_op(self, ledger, owner) -> None:
        # Arrange
        job_id = await ledger.create(owner.subject, {"query": "SELECT 1"})
        artifact = _artifact(job_id)
        await ledger.transition(job_id, JobStatus.RUNNING)
        await ledger.transition(job_id, JobStatus.COMPLETED, result=artifact)
        before = await ledger.get(job_id, owner)

        # Act
        second = await ledger.transition(job_id, JobStatus.COMPLETED, result=artifact)

        # Assert
        assert second is TransitionResult.ALREADY_APPLIED
        after = await ledger.get(job_id, owner)
        assert after == before

    @pytest.mark.asyncio
    async def test_completion_with_different_result_should_be_rejected(self, ledger, owner) -> None:
        job_id = await ledger.create(owner.subject, {"query": "SELECT 1"})
        await ledger.transition(job_id, JobStatus.RUNNING)
        await ledger.transition(job_id, JobStatus.COMPLETED, result=_artifact(job_id))

        with pytest.raises(InvalidTransition):
            await ledger.transition(
                job_id, JobStatus.COMPLETED, result=_artifact(job_id, key="results/other.json")
            )

    @pytest.mark.asyncio
    async def test_failed_should_record_error_detail(self, ledger, owner) -> None:
        job_id = await ledger.create(owner.subject, {"query": "SELECT 1"})
        error = ErrorDetail(error_class="ProgrammingError", message="no such table: widgets")
        await ledger.transition(job_id, JobStatus.RUNNING)

        await ledger.transition(job_id, JobStatus.FAILED, error=error)

        job = await ledger.get(job_id, owner)
        assert job.status == JobStatus.FAILED
        assert job.error_detail == error
        assert job.result_ref is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "target",
        [JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.PENDING],
    )
    async def test_pending_job_should_only_move_to_running(self, ledger, owner, target) -> None:
        job_id = await ledger.create(owner.subject, {"query": "SELECT 1"})
        kwargs = {}
        if target == JobStatus.COMPLETED:
            kwargs["result"] = _artifact(job_id)
        elif target == JobStatus.FAILED:
            kwargs["error"] = ErrorDetail(error_class="X", message="y")

        with pytest.raises(InvalidTransition):
            await ledger.transition(job_id, target, **kwargs)

        job = await ledger.get(job_id, owner)
        assert job.status == JobStatus.PENDING

    @pytest.mark.asyncio
    async def test_terminal_job_should_not_move_again(self, ledger, owner) -> None:
        job_id = await ledger.create(owner.subject, {"query": "SELECT 1"})
        await ledger.transition(job_id, JobStatus.RUNNING)
        await ledger.transition(job_id, JobStatus.COMPLETED, result=_artifact(job_id))

        with pytest.raises(InvalidTransition):
            await ledger.transition(
                job_id, JobStatus.FAILED, error=ErrorDetail(error_class="X", message="late")
            )
        with pytest.raises(InvalidTransition):
            await ledger.transition(job_id, JobStatus.RUNNING)

    @pytest.mark.asyncio
    async def test_second_claim_should_report_already_applied(self, ledger, owner) -> None:
        job_id = await ledger.create(owner.subject, {"query": "SELECT 1"})

        first = await ledger.transition(job_id, JobStatus.RUNNING)
        second = await ledger.transition(job_id, JobStatus.RUNNING)

        assert first is TransitionResult.APPLIED
        assert second is TransitionResult.ALREADY_APPLIED

    @pytest.mark.asyncio
    async def test_completed_requires_result(self, ledger, owner) -> None:
        job_id = await ledger.create(owner.subject, {"query": "SELECT 1"})
        await ledger.transition(job_id, JobStatus.RUNNING)

        with pytest.raises(InvalidTransition):
            await ledger.transition(job_id, JobStatus.COMPLETED)

    @pytest.mark.asyncio
    async def test_failed_requires_error(self, ledger, owner) -> None:
        job_id = await ledger.create(owner.subject, {"query": "SELECT 1"})
        await ledger.transition(job_id, JobStatus.RUNNING)

        with pytest.raises(InvalidTransition):
            await ledger.transition(job_id, JobStatus.FAILED)

    @pytest.mark.asyncio
    async def test_transition_of_unknown_job_should_raise_not_found(self, ledger) -> None:
        with pytest.raises(JobNotFound):
            await ledger.transition(uuid.uuid4(), JobStatus.RUNNING)


class TestList:
    """list() pagination and ownership."""

    @pytest.mark.asyncio
    async def test_list_should_return_only_owner_jobs_newest_first(
        self, ledger, owner, stranger
    ) -> None:
        ids = [await ledger.create(owner.subject, {"query": f"SELECT {i}"}) for i in range(3)]
        await ledger.create(stranger.subject, {"query": "SELECT 99"})

        summaries = await ledger.list(owner.subject, limit=10, offset=0)

        assert {s.id for s in summaries} == set(ids)
        created = [s.created_at for s in summaries]
        assert created == sorted(created, reverse=True)

    @pytest.mark.asyncio
    async def test_list_should_paginate(self, ledger, owner) -> None:
        for i in range(5):
            await ledger.create(owner.subject, {"query": f"SELECT {i}"})

        first = await ledger.list(owner.subject, limit=2, offset=0)
        rest = await ledger.list(owner.subject, limit=10, offset=2)

        assert len(first) == 2
        assert len(rest) == 3
        assert not {s.id for s in first} & {s.id for s in rest}
