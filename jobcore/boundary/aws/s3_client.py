"""
S3 client for object storage operations.

Handles writes and reads of result artifacts and ingestion payloads, plus
presigned URL generation for time-bounded result retrieval.

Dependencies: boto3
System role: Object store boundary for the Result Store and the batch applier
"""

from datetime import datetime, timedelta, timezone

import boto3
from botocore.exceptions import BotoCoreError, ClientError

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


class S3ObjectError(Exception):
    """Raised when an S3 object operation fails."""

    def __init__(self, message: str, s3_key: str | None = None) -> None:
        self.s3_key = s3_key
        super().__init__(message)


class S3ObjectNotFoundError(S3ObjectError):
    """Raised when the requested object does not exist."""


class S3ObjectClient:
    """S3 client bound to a single bucket."""

    def __init__(self, bucket: str, region: str = "ap-southeast-2", s3_client=None) -> None:
        """
        Initialize S3 client for a bucket.

        Args:
            bucket: S3 bucket name
            region: AWS region for S3 bucket
            s3_client: Optional preconfigured boto3 S3 client
        """
        self._bucket = bucket
        self._region = region
        self._s3_client = s3_client or boto3.client("s3", region_name=region)

    @property
    def bucket(self) -> str:
        return self._bucket

    def put_bytes(
        self,
        s3_key: str,
        body: bytes,
        content_type: str = "application/octet-stream",
        metadata: dict[str, str] | None = None,
    ) -> None:
        """
        Write an object.

        Args:
            s3_key: S3 object key
            body: Object content
            content_type: MIME type of the content
            metadata: User metadata stored with the object

        Raises:
            S3ObjectError: If the write fails
        """
        try:
            self._s3_client.put_object(
                Bucket=self._bucket,
                Key=s3_key,
                Body=body,
                ContentType=content_type,
                Metadata=metadata or {},
            )
        except (ClientError, BotoCoreError) as e:
            raise S3ObjectError(f"Failed to write to S3: {e}", s3_key) from e

    def get_bytes(self, s3_key: str) -> bytes:
        """
        Read an object fully into memory.

        Args:
            s3_key: S3 object key

        Returns:
            bytes: Object content

        Raises:
            S3ObjectNotFoundError: Object does not exist
            S3ObjectError: Any other read failure
        """
        try:
            response = self._s3_client.get_object(Bucket=self._bucket, Key=s3_key)
            return response["Body"].read()
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code in _NOT_FOUND_CODES:
                raise S3ObjectNotFoundError(f"File not found in S3: {s3_key}", s3_key) from e
            raise S3ObjectError(f"Failed to read from S3: {e}", s3_key) from e
        except BotoCoreError as e:
            raise S3ObjectError(f"Failed to read from S3: {e}", s3_key) from e

    def generate_presigned_download_url(
        self,
        s3_key: str,
        expires_in: int = 3600,
    ) -> tuple[str, datetime]:
        """
        Generate presigned URL for downloading an S3 object.

        Args:
            s3_key: S3 object key (path in bucket)
            expires_in: URL expiry in seconds (default 1 hour)

        Returns:
            tuple[str, datetime]: (presigned_url, expires_at)

        Raises:
            S3ObjectError: If presigned URL generation fails
        """
        try:
            presigned_url = self._s3_client.generate_presigned_url(
                ClientMethod="get_object",
                Params={
                    "Bucket": self._bucket,
                    "Key": s3_key,
                },
                ExpiresIn=expires_in,
            )
        except (ClientError, BotoCoreError) as e:
            raise S3ObjectError(f"Failed to presign S3 URL: {e}", s3_key) from e
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=expires_in)
        return presigned_url, expires_at

