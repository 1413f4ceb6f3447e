"""
Test suite for the Long-Running Executor.

System role: Verification of claim, execution, result storage and failure capture
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest

from jobcore.boundary.engine.sql_engine import QueryResult
from jobcore.core.exceptions import ExecutionFailed
from jobcore.core.executor import ExecutionOutcome, LongRunningExecutor
from jobcore.core.job_ledger import JobLedger
from jobcore.core.result_store import ResultStore
from jobcore.models.job import JobStatus


@pytest.fixture
def result_store(mock_s3_object_client) -> ResultStore:
    return ResultStore(mock_s3_object_client, key_prefix="results")


@pytest.fixture
async def file_session_factory(tmp_path):
    """Session factory over a file-backed SQLite database, one connection per session."""
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
    from sqlalchemy.pool import NullPool

    from jobcore.boundary.db.create_tables import create_all_tables

    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'jobs.db'}",
        poolclass=NullPool,
        connect_args={"timeout": 30},
    )
    await create_all_tables(engine)
    yield async_sessionmaker(engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)
    await engine.dispose()


def _executor(session_factory, result_store, engine, **kwargs) -> LongRunningExecutor:
    return LongRunningExecutor(session_factory, result_store, engine, **kwargs)


async def _pending_job(session_factory, owner, payload) -> object:
    async with session_factory() as session:
        return await JobLedger(session).create(owner.subject, payload)


async def _load(session_factory, job_id):
    async with session_factory() as session:
        return await JobLedger(session).get_unchecked(job_id)


class TestRun:
    """run()."""

    @pytest.mark.asyncio
    async def test_run_should_complete_job_and_store_result(
        self,
        session_factory,
        result_store,
        mock_query_engine,
        object_store,
        owner,
        valid_payload,
    ) -> None:
        # Arrange
        job_id = await _pending_job(session_factory, owner, valid_payload)
        executor = _executor(session_factory, result_store, mock_query_engine)

        # Act
        outcome = await executor.run(job_id)

        # Assert
        assert outcome is ExecutionOutcome.COMPLETED
        job = await _load(session_factory, job_id)
        assert job.status == JobStatus.COMPLETED
        assert job.result_ref == f"results/{owner.subject}/{job_id}.json"
        body = json.loads(object_store[job.result_ref])
        assert body["columns"] == ["id", "name"]
        assert body["rows"][1] == {"id": 2, "name": "beta"}
        assert job.result_size == len(object_store[job.result_ref])
        submission = mock_query_engine.execute.await_args.args[0]
        assert submission.parameters == {"owner": "user-1"}

    @pytest.mark.asyncio
    async def test_engine_failure_should_fail_job_with_error_class(
        self, session_factory, result_store, owner, valid_payload
    ) -> None:
        # Arrange
        engine = AsyncMock()
        engine.execute.side_effect = ExecutionFailed(
            "ProgrammingError: relation \"widgets\" does not exist",
            details={"upstream_error": "ProgrammingError"},
        )
        job_id = await _pending_job(session_factory, owner, valid_payload)

        # Act
        outcome = await _executor(session_factory, result_store, engine).run(job_id)

        # Assert
        assert outcome is ExecutionOutcome.FAILED
        job = await _load(session_factory, job_id)
        assert job.status == JobStatus.FAILED
        assert job.error_detail.error_class == "ProgrammingError"
        assert "widgets" in job.error_detail.message
        assert "Traceback" not in job.error_detail.message
        assert job.result_ref is None

    @pytest.mark.asyncio
    async def test_long_error_message_should_be_truncated(
        self, session_factory, result_store, owner, valid_payload
    ) -> None:
        engine = AsyncMock()
        engine.execute.side_effect = RuntimeError("x" * 5000)
        job_id = await _pending_job(session_factory, owner, valid_payload)

        await _executor(
            session_factory, result_store, engine, error_message_max_length=100
        ).run(job_id)

        job = await _load(session_factory, job_id)
        assert job.error_detail.error_class == "RuntimeError"
        assert len(job.error_detail.message) <= 100

    @pytest.mark.asyncio
    async def test_execution_past_outer_bound_should_fail_with_timeout(
        self, session_factory, result_store, owner, valid_payload
    ) -> None:
        # Arrange
        async def slow(_submission):
            await asyncio.sleep(10)

        engine = AsyncMock()
        engine.execute.side_effect = slow
        job_id = await _pending_job(session_factory, owner, valid_payload)

        # Act
        outcome = await _executor(
            session_factory, result_store, engine, max_execution_seconds=0.05
        ).run(job_id)

        # Assert
        assert outcome is ExecutionOutcome.FAILED
        job = await _load(session_factory, job_id)
        assert job.error_detail.error_class == "ExecutionTimeout"

    @pytest.mark.asyncio
    async def test_result_store_failure_should_fail_job(
        self, session_factory, mock_query_engine, mock_s3_object_client, owner, valid_payload
    ) -> None:
        from jobcore.boundary.aws.s3_client import S3ObjectError

        mock_s3_object_client.put_bytes.side_effect = S3ObjectError("AccessDenied", "k")
        job_id = await _pending_job(session_factory, owner, valid_payload)

        outcome = await _executor(
            session_factory, ResultStore(mock_s3_object_client), mock_query_engine
        ).run(job_id)

        assert outcome is ExecutionOutcome.FAILED
        job = await _load(session_factory, job_id)
        assert job.error_detail.error_class == "StorageUnavailable"

    @pytest.mark.asyncio
    async def test_run_on_finished_job_should_skip(
        self, session_factory, result_store, mock_query_engine, owner, valid_payload
    ) -> None:
        job_id = await _pending_job(session_factory, owner, valid_payload)
        executor = _executor(session_factory, result_store, mock_query_engine)
        await executor.run(job_id)

        outcome = await executor.run(job_id)

        assert outcome is ExecutionOutcome.SKIPPED
        assert mock_query_engine.execute.await_count == 1

    @pytest.mark.asyncio
    async def test_concurrent_runs_should_execute_once(
        self, file_session_factory, result_store, mock_query_engine, owner, valid_payload
    ) -> None:
        # Arrange: separate connections, so the claim race is decided by the database
        session_factory = file_session_factory
        job_id = await _pending_job(session_factory, owner, valid_payload)
        executor = _executor(session_factory, result_store, mock_query_engine)

        # Act
        outcomes = await asyncio.gather(executor.run(job_id), executor.run(job_id))

        # Assert
        assert sorted(o.value for o in outcomes) == ["completed", "skipped"]
        assert mock_query_engine.execute.await_count == 1
        job = await _load(session_factory, job_id)
        assert job.status == JobStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_unknown_job_should_skip(
        self, session_factory, result_store, mock_query_engine, job_id
    ) -> None:
        outcome = await _executor(session_factory, result_store, mock_query_engine).run(job_id)

        assert outcome is ExecutionOutcome.SKIPPED
        mock_query_engine.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_ledger_transaction_should_stay_open_during_query(
        self, session_factory, result_store, owner, valid_payload
    ) -> None:
        # Arrange
        job_id = await _pending_job(session_factory, owner, valid_payload)
        opened = []

        def tracking_factory():
            session = session_factory()
            opened.append(session)
            return session

        in_transaction = []

        async def execute(submission):
            in_transaction.append(opened[0].in_transaction())
            return QueryResult(columns=["n"], rows=[{"n": 1}])

        engine = AsyncMock()
        engine.execute.side_effect = execute

        # Act
        outcome = await _executor(tracking_factory, result_store, engine).run(job_id)

        # Assert
        assert outcome is ExecutionOutcome.COMPLETED
        assert in_transaction == [False]


class TestRedeliveredRun:
    """run() on a job another invocation already claimed."""

    @pytest.mark.asyncio
    async def test_stored_result_should_be_recorded_without_rerunning(
        self, session_factory, result_store, mock_query_engine, object_store, owner, valid_payload
    ) -> None:
        # Arrange: the first attempt stored its artifact, then lost the ledger
        job_id = await _pending_job(session_factory, owner, valid_payload)
        async with session_factory() as session:
            await JobLedger(session).transition(job_id, JobStatus.RUNNING)
        key = result_store.key_for(owner.subject, job_id)
        object_store[key] = b'{"columns": [], "rows": [], "truncated": false}'

        # Act
        outcome = await _executor(session_factory, result_store, mock_query_engine).run(job_id)

        # Assert
        assert outcome is ExecutionOutcome.SKIPPED
        mock_query_engine.execute.assert_not_awaited()
        job = await _load(session_factory, job_id)
        assert job.status == JobStatus.COMPLETED
        assert job.result_ref == key
        assert job.result_size == len(object_store[key])

    @pytest.mark.asyncio
    async def test_running_job_without_result_should_be_left_alone(
        self, session_factory, result_store, mock_query_engine, owner, valid_payload
    ) -> None:
        job_id = await _pending_job(session_factory, owner, valid_payload)
        async with session_factory() as session:
            await JobLedger(session).transition(job_id, JobStatus.RUNNING)

        outcome = await _executor(session_factory, result_store, mock_query_engine).run(job_id)

        assert outcome is ExecutionOutcome.SKIPPED
        mock_query_engine.execute.assert_not_awaited()
        job = await _load(session_factory, job_id)
        assert job.status == JobStatus.RUNNING
