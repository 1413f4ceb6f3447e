"""
Result Store.

Key-addressed storage for job result artifacts on top of the S3 object
client. Artifacts are written once; callers only ever receive a
time-bounded presigned handle, never the object itself.

Dependencies: jobcore.boundary.aws, hashlib
System role: Large result payload storage with retrieval handles
"""

import asyncio
import hashlib
import logging
from datetime import datetime, timezone
from uuid import UUID

from jobcore.boundary.aws.s3_client import S3ObjectClient, S3ObjectError, S3ObjectNotFoundError
from jobcore.core.exceptions import StorageUnavailable
from jobcore.models.job import Job
from jobcore.models.result import ResultArtifact, ResultHandle

logger = logging.getLogger(__name__)


class ResultStore:
    """Write result artifacts and mint retrieval handles."""

    def __init__(
        self,
        s3_client: S3ObjectClient,
        key_prefix: str = "results",
        handle_expiry: int = 3600,
    ) -> None:
        """
        Initialize result store.

        Args:
            s3_client: Object client bound to the results bucket
            key_prefix: Key prefix for artifacts
            handle_expiry: Default handle lifetime in seconds
        """
        self._s3 = s3_client
        self._prefix = key_prefix.strip("/")
        self._handle_expiry = handle_expiry

    def key_for(self, owner_id: str, job_id: UUID) -> str:
        return f"{self._prefix}/{owner_id}/{job_id}.json"

    async def write(
        self,
        job_id: UUID,
        owner_id: str,
        body: bytes,
        content_type: str = "application/json",
    ) -> ResultArtifact:
        """
        Store a job's output.

        Args:
            job_id: Owning job
            owner_id: Job owner, embedded in the key
            body: Serialized result
            content_type: MIME type

        Returns:
            ResultArtifact: Key, size and content hash

        Raises:
            StorageUnavailable: Object store rejected the write
        """
        key = self.key_for(owner_id, job_id)
        digest = hashlib.sha256(body).hexdigest()
        try:
            await asyncio.to_thread(
                self._s3.put_bytes,
                key,
                body,
                content_type,
                {"job-id": str(job_id), "owner-id": owner_id, "sha256": digest},
            )
        except S3ObjectError as e:
            raise StorageUnavailable(str(e), operation="put_result", details={"key": key}) from e

        logger.info(
            "%s:write - Result stored",
            __name__,
            extra={"job_id": str(job_id), "key": key, "size": len(body)},
        )
        return ResultArtifact(
            key=key,
            size=len(body),
            content_sha256=digest,
            created_at=datetime.now(timezone.utc),
            job_id=job_id,
        )

    async def find(self, job_id: UUID, owner_id: str) -> ResultArtifact | None:
        """
        Describe an artifact already written for a job, if any.

        Returns:
            ResultArtifact rebuilt from the stored bytes, or None when absent

        Raises:
            StorageUnavailable: Object store read failed
        """
        key = self.key_for(owner_id, job_id)
        try:
            body = await asyncio.to_thread(self._s3.get_bytes, key)
        except S3ObjectNotFoundError:
            return None
        except S3ObjectError as e:
            raise StorageUnavailable(str(e), operation="find_result", details={"key": key}) from e
        return ResultArtifact(
            key=key,
            size=len(body),
            content_sha256=hashlib.sha256(body).hexdigest(),
            created_at=datetime.now(timezone.utc),
            job_id=job_id,
        )

    def handle_for(self, job: Job, expires_in: int | None = None) -> ResultHandle | None:
        """
        Mint a retrieval handle for a job's artifact.

        The caller must already have passed the ledger's ownership check.

        Args:
            job: Job read through JobLedger.get
            expires_in: Override of the default lifetime

        Returns:
            ResultHandle, or None when the job has no artifact

        Raises:
            StorageUnavailable: Presigning failed
        """
        if job.result_ref is None:
            return None
        try:
            url, expires_at = self._s3.generate_presigned_download_url(
                job.result_ref,
                expires_in=expires_in or self._handle_expiry,
            )
        except S3ObjectError as e:
            raise StorageUnavailable(str(e), operation="presign") from e
        return ResultHandle(url=url, expires_at=expires_at)

    async def read(self, key: str, expected_sha256: str | None = None) -> bytes:
        """
        Fetch an artifact, optionally verifying its hash.

        Raises:
            StorageUnavailable: Read failed or content does not match the hash
        """
        try:
            body = await asyncio.to_thread(self._s3.get_bytes, key)
        except S3ObjectError as e:
            raise StorageUnavailable(str(e), operation="get_result", details={"key": key}) from e
        if expected_sha256 and hashlib.sha256(body).hexdigest() != expected_sha256:
            raise StorageUnavailable(
                f"Result artifact {key} failed integrity check",
                operation="get_result",
            )
        return body
