"""
Task publishers for the dispatcher -> executor handoff.

The handoff has no return channel: publishing succeeds once the task is
enqueued, regardless of when or whether execution starts.

Dependencies: boto3, asyncio
System role: Executor trigger implementations
"""

import asyncio
import logging
from typing import Awaitable, Callable
from uuid import UUID, uuid4

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from jobcore.core.exceptions import StorageUnavailable
from jobcore.models.job import JobTask

logger = logging.getLogger(__name__)


class SqsTaskPublisher:
    """Publish executor tasks to an SQS queue."""

    def __init__(self, queue_url: str, region: str = "ap-southeast-2", sqs_client=None) -> None:
        """
        Initialize publisher.

        Args:
            queue_url: Executor task queue URL
            region: AWS region
            sqs_client: Optional preconfigured boto3 SQS client
        """
        self._queue_url = queue_url
        self._sqs = sqs_client or boto3.client("sqs", region_name=region)

    async def publish(self, task: JobTask) -> str:
        """
        Enqueue a task message.

        Args:
            task: Job task to hand off

        Returns:
            str: SQS MessageId

        Raises:
            StorageUnavailable: SQS rejected the send
        """
        try:
            response = await asyncio.to_thread(
                self._sqs.send_message,
                QueueUrl=self._queue_url,
                MessageBody=task.model_dump_json(),
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("%s:publish - %s: %s", __name__, type(e).__name__, e)
            raise StorageUnavailable(f"Failed to enqueue job task: {e}", operation="publish") from e
        return response["MessageId"]


class LocalTaskPublisher:
    """
    Run tasks as background asyncio tasks in the current process.

    For single-process development where no task queue is configured.
    """

    def __init__(self, run: Callable[[UUID], Awaitable[object]]) -> None:
        self._run = run
        self._pending: set[asyncio.Task] = set()

    async def publish(self, task: JobTask) -> str:
        background = asyncio.create_task(self._run(task.job_id))
        self._pending.add(background)
        background.add_done_callback(self._finished)
        return str(uuid4())

    def _finished(self, background: asyncio.Task) -> None:
        self._pending.discard(background)
        if not background.cancelled() and background.exception() is not None:
            logger.error(
                "%s - local task failed: %s",
                __name__,
                background.exception(),
            )

    async def drain(self) -> None:
        """Wait for every task published so far."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
