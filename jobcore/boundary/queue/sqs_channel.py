"""
SQS-backed buffering channel.

Envelopes are SQS messages whose body is an EventDescriptor JSON document.
Delivery count comes from ApproximateReceiveCount; dead-lettering is
explicit (send to the DLQ, then delete from the primary queue) so the
ceiling is owned by configuration, not by the queue's redrive policy.

Dependencies: boto3, pydantic
System role: Production Buffering Channel implementation
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Sequence

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import ValidationError

from jobcore.core.exceptions import StorageUnavailable
from jobcore.models.ingestion import DeliveryEnvelope, EventDescriptor

logger = logging.getLogger(__name__)

SQS_BATCH_LIMIT = 10
SQS_MAX_WAIT_SECONDS = 20


def _chunks(items: Sequence[Any], size: int):
    for start in range(0, len(items), size):
        yield items[start : start + size]


class SqsChannel:
    """Buffering channel on top of an SQS queue plus its dead-letter queue."""

    def __init__(
        self,
        queue_url: str,
        dead_letter_queue_url: str,
        region: str = "ap-southeast-2",
        visibility_timeout: int = 60,
        max_receive_count: int = 3,
        sqs_client=None,
    ) -> None:
        """
        Initialize SQS channel.

        Args:
            queue_url: Primary queue URL
            dead_letter_queue_url: Dead-letter queue URL
            region: AWS region
            visibility_timeout: Seconds a claim hides a message
            max_receive_count: Deliveries allowed before dead-lettering
            sqs_client: Optional preconfigured boto3 SQS client

        Raises:
            ValueError: Missing queue URLs
        """
        if not queue_url or not dead_letter_queue_url:
            raise ValueError("SqsChannel requires both queue_url and dead_letter_queue_url")
        self._queue_url = queue_url
        self._dlq_url = dead_letter_queue_url
        self._visibility_timeout = visibility_timeout
        self._max_receive_count = max_receive_count
        self._sqs = sqs_client or boto3.client("sqs", region_name=region)

    async def _call(self, operation: str, **kwargs) -> dict:
        try:
            return await asyncio.to_thread(getattr(self._sqs, operation), **kwargs)
        except (ClientError, BotoCoreError) as e:
            logger.error("%s:%s - %s: %s", __name__, operation, type(e).__name__, e)
            raise StorageUnavailable(f"SQS {operation} failed: {e}", operation=operation) from e

    async def send(self, descriptor: EventDescriptor) -> str:
        response = await self._call(
            "send_message",
            QueueUrl=self._queue_url,
            MessageBody=descriptor.model_dump_json(),
        )
        return response["MessageId"]

    async def receive(self, max_messages: int = 10, wait_seconds: float = 0.0) -> list[DeliveryEnvelope]:
        response = await self._call(
            "receive_message",
            QueueUrl=self._queue_url,
            MaxNumberOfMessages=max(1, min(max_messages, SQS_BATCH_LIMIT)),
            WaitTimeSeconds=int(max(0, min(wait_seconds, SQS_MAX_WAIT_SECONDS))),
            VisibilityTimeout=self._visibility_timeout,
            AttributeNames=["ApproximateReceiveCount", "SentTimestamp"],
        )

        envelopes: list[DeliveryEnvelope] = []
        for message in response.get("Messages", []):
            envelope = self._to_envelope(message)
            if envelope is None:
                await self._dead_letter_raw(message, "malformed envelope body")
                continue
            if envelope.delivery_count > self._max_receive_count:
                await self.dead_letter(envelope, "redelivery exhausted")
                continue
            envelopes.append(envelope)
        return envelopes

    def _to_envelope(self, message: dict) -> DeliveryEnvelope | None:
        attributes = message.get("Attributes", {})
        try:
            descriptor = EventDescriptor.model_validate_json(message["Body"])
        except (KeyError, ValidationError) as e:
            logger.warning(
                "%s:_to_envelope - unparseable body: %s",
                __name__,
                e,
                extra={"message_id": message.get("MessageId")},
            )
            return None

        sent_ms = int(attributes.get("SentTimestamp", "0"))
        return DeliveryEnvelope(
            envelope_id=message["MessageId"],
            descriptor=descriptor,
            delivery_count=max(1, int(attributes.get("ApproximateReceiveCount", "1"))),
            enqueued_at=datetime.fromtimestamp(sent_ms / 1000, tz=timezone.utc),
            visibility_deadline=datetime.now(timezone.utc) + timedelta(seconds=self._visibility_timeout),
            receipt=message["ReceiptHandle"],
        )

    async def ack(self, envelopes: Sequence[DeliveryEnvelope]) -> int:
        deleted = 0
        for chunk in _chunks(list(envelopes), SQS_BATCH_LIMIT):
            response = await self._call(
                "delete_message_batch",
                QueueUrl=self._queue_url,
                Entries=[
                    {"Id": str(index), "ReceiptHandle": envelope.receipt}
                    for index, envelope in enumerate(chunk)
                ],
            )
            deleted += len(response.get("Successful", []))
            for failure in response.get("Failed", []):
                logger.error(
                    "%s:ack - delete failed",
                    __name__,
                    extra={
                        "envelope_id": chunk[int(failure["Id"])].envelope_id,
                        "code": failure.get("Code"),
                    },
                )
        return deleted

    async def release(self, envelopes: Sequence[DeliveryEnvelope]) -> None:
        for chunk in _chunks(list(envelopes), SQS_BATCH_LIMIT):
            await self._call(
                "change_message_visibility_batch",
                QueueUrl=self._queue_url,
                Entries=[
                    {"Id": str(index), "ReceiptHandle": envelope.receipt, "VisibilityTimeout": 0}
                    for index, envelope in enumerate(chunk)
                ],
            )

    async def dead_letter(self, envelope: DeliveryEnvelope, reason: str) -> None:
        await self._call(
            "send_message",
            QueueUrl=self._dlq_url,
            MessageBody=envelope.descriptor.model_dump_json(),
            MessageAttributes={
                "reason": {"DataType": "String", "StringValue": reason},
                "source_message_id": {"DataType": "String", "StringValue": envelope.envelope_id},
                "delivery_count": {"DataType": "Number", "StringValue": str(envelope.delivery_count)},
            },
        )
        await self._call("delete_message", QueueUrl=self._queue_url, ReceiptHandle=envelope.receipt)
        logger.warning(
            "%s:dead_letter - envelope dead-lettered",
            __name__,
            extra={
                "envelope_id": envelope.envelope_id,
                "delivery_count": envelope.delivery_count,
                "reason": reason,
            },
        )

    async def _dead_letter_raw(self, message: dict, reason: str) -> None:
        await self._call(
            "send_message",
            QueueUrl=self._dlq_url,
            MessageBody=message.get("Body", ""),
            MessageAttributes={
                "reason": {"DataType": "String", "StringValue": reason},
                "source_message_id": {"DataType": "String", "StringValue": message.get("MessageId", "")},
            },
        )
        await self._call("delete_message", QueueUrl=self._queue_url, ReceiptHandle=message["ReceiptHandle"])
