"""
Test suite for the Result Store.

System role: Verification of artifact writes and retrieval handles
"""

import hashlib
import uuid
from datetime import datetime, timezone

import pytest

from jobcore.boundary.aws.s3_client import S3ObjectError
from jobcore.core.exceptions import StorageUnavailable
from jobcore.core.result_store import ResultStore
from jobcore.models.job import Job, JobStatus


@pytest.fixture
def store(mock_s3_object_client) -> ResultStore:
    return ResultStore(mock_s3_object_client, key_prefix="results/", handle_expiry=900)


def _job(status: JobStatus, result_ref: str | None) -> Job:
    now = datetime.now(timezone.utc)
    return Job(
        id=uuid.uuid4(),
        owner_id="user-1",
        payload={"query": "SELECT 1"},
        status=status,
        result_ref=result_ref,
        created_at=now,
        updated_at=now,
    )


class TestWrite:
    """write()."""

    @pytest.mark.asyncio
    async def test_write_should_store_body_under_owner_scoped_key(
        self, store, mock_s3_object_client, object_store, job_id
    ) -> None:
        body = b'{"rows": []}'

        artifact = await store.write(job_id, "user-1", body)

        assert artifact.key == f"results/user-1/{job_id}.json"
        assert artifact.size == len(body)
        assert artifact.content_sha256 == hashlib.sha256(body).hexdigest()
        assert object_store[artifact.key] == body
        metadata = mock_s3_object_client.put_bytes.call_args.args[3]
        assert metadata["job-id"] == str(job_id)

    @pytest.mark.asyncio
    async def test_write_failure_should_raise_storage_unavailable(
        self, store, mock_s3_object_client, job_id
    ) -> None:
        mock_s3_object_client.put_bytes.side_effect = S3ObjectError("SlowDown", "k")

        with pytest.raises(StorageUnavailable):
            await store.write(job_id, "user-1", b"{}")


class TestHandleFor:
    """handle_for()."""

    def test_completed_job_should_get_presigned_handle(self, store, mock_s3_object_client) -> None:
        job = _job(JobStatus.COMPLETED, "results/user-1/x.json")

        handle = store.handle_for(job)

        assert "results/user-1/x.json" in handle.url
        assert handle.expires_at.year == 2030
        mock_s3_object_client.generate_presigned_download_url.assert_called_once_with(
            "results/user-1/x.json", expires_in=900
        )

    def test_job_without_artifact_should_get_no_handle(self, store) -> None:
        assert store.handle_for(_job(JobStatus.RUNNING, None)) is None


class TestRead:
    """read()."""

    @pytest.mark.asyncio
    async def test_read_should_verify_hash(self, store, object_store) -> None:
        object_store["results/a.json"] = b"payload"

        assert await store.read("results/a.json", hashlib.sha256(b"payload").hexdigest()) == b"payload"
        with pytest.raises(StorageUnavailable):
            await store.read("results/a.json", "0" * 64)

    @pytest.mark.asyncio
    async def test_read_missing_key_should_raise_storage_unavailable(self, store) -> None:
        with pytest.raises(StorageUnavailable):
            await store.read("results/missing.json")


class TestFind:
    """find()."""

    @pytest.mark.asyncio
    async def test_stored_artifact_should_be_described(self, store, job_id) -> None:
        written = await store.write(job_id, "user-1", b'{"rows": [1]}')

        found = await store.find(job_id, "user-1")

        assert (found.key, found.size, found.content_sha256) == (
            written.key,
            written.size,
            written.content_sha256,
        )

    @pytest.mark.asyncio
    async def test_absent_artifact_should_be_none(self, store, job_id) -> None:
        assert await store.find(job_id, "user-1") is None

    @pytest.mark.asyncio
    async def test_read_failure_should_raise_storage_unavailable(
        self, store, mock_s3_object_client, job_id
    ) -> None:
        mock_s3_object_client.get_bytes.side_effect = S3ObjectError("SlowDown", "k")

        with pytest.raises(StorageUnavailable):
            await store.find(job_id, "user-1")
