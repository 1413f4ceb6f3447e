"""
In-memory buffering channel.

Reproduces the channel guarantees inside one process: claims hide an
envelope until its visibility deadline, unacknowledged envelopes come back
with an incremented delivery count, and an envelope whose delivery count
has reached the ceiling is diverted to the dead-letter list instead of
being delivered again. Used for local development and tests.

Dependencies: jobcore.models, jobcore.boundary.queue.base
System role: Vendor-neutral Buffering Channel implementation
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Sequence

from jobcore.boundary.queue.base import Clock, SystemClock
from jobcore.models.ingestion import DeadLetter, DeliveryEnvelope, EventDescriptor

logger = logging.getLogger(__name__)


@dataclass
class _StoredMessage:
    envelope_id: str
    descriptor: EventDescriptor
    enqueued_at: datetime
    delivery_count: int = 0
    invisible_until: float | None = None
    receipt: str = ""

    def visible(self, now: float) -> bool:
        return self.invisible_until is None or self.invisible_until <= now


class InMemoryChannel:
    """Single-process channel with visibility timeouts and dead-lettering."""

    def __init__(
        self,
        visibility_timeout: float = 60.0,
        max_receive_count: int = 3,
        clock: Clock | None = None,
        poll_interval: float = 0.5,
    ) -> None:
        """
        Initialize channel.

        Args:
            visibility_timeout: Seconds a claim hides an envelope
            max_receive_count: Deliveries allowed before dead-lettering
            clock: Time source (injectable for deterministic tests)
            poll_interval: Sleep between checks while waiting for messages
        """
        self._visibility_timeout = visibility_timeout
        self._max_receive_count = max_receive_count
        self._clock = clock or SystemClock()
        self._poll_interval = poll_interval
        self._messages: dict[str, _StoredMessage] = {}
        self._dead_letters: list[DeadLetter] = []

    @property
    def dead_letters(self) -> list[DeadLetter]:
        return list(self._dead_letters)

    def __len__(self) -> int:
        return len(self._messages)

    async def send(self, descriptor: EventDescriptor) -> str:
        envelope_id = str(uuid.uuid4())
        self._messages[envelope_id] = _StoredMessage(
            envelope_id=envelope_id,
            descriptor=descriptor,
            enqueued_at=datetime.now(timezone.utc),
        )
        return envelope_id

    async def receive(self, max_messages: int = 10, wait_seconds: float = 0.0) -> list[DeliveryEnvelope]:
        deadline = self._clock.monotonic() + max(0.0, wait_seconds)
        while True:
            now = self._clock.monotonic()
            claimed = self._claim(max_messages, now)
            if claimed or now >= deadline:
                return claimed
            await self._clock.sleep(min(self._poll_interval, deadline - now))

    def _claim(self, max_messages: int, now: float) -> list[DeliveryEnvelope]:
        claimed: list[DeliveryEnvelope] = []
        for message in list(self._messages.values()):
            if len(claimed) >= max_messages:
                break
            if not message.visible(now):
                continue
            if message.delivery_count >= self._max_receive_count:
                self._divert(message, "redelivery exhausted")
                continue

            message.delivery_count += 1
            message.invisible_until = now + self._visibility_timeout
            message.receipt = str(uuid.uuid4())
            claimed.append(self._to_envelope(message))
        return claimed

    def _to_envelope(self, message: _StoredMessage) -> DeliveryEnvelope:
        return DeliveryEnvelope(
            envelope_id=message.envelope_id,
            descriptor=message.descriptor,
            delivery_count=message.delivery_count,
            enqueued_at=message.enqueued_at,
            visibility_deadline=datetime.now(timezone.utc) + timedelta(seconds=self._visibility_timeout),
            receipt=message.receipt,
        )

    def _current(self, envelope: DeliveryEnvelope) -> _StoredMessage | None:
        message = self._messages.get(envelope.envelope_id)
        if message is None or message.receipt != envelope.receipt:
            # Claim expired and another consumer re-claimed it, or it is already gone.
            logger.warning(
                "%s - stale receipt ignored",
                __name__,
                extra={"envelope_id": envelope.envelope_id},
            )
            return None
        return message

    async def ack(self, envelopes: Sequence[DeliveryEnvelope]) -> int:
        deleted = 0
        for envelope in envelopes:
            if self._current(envelope) is not None:
                del self._messages[envelope.envelope_id]
                deleted += 1
        return deleted

    async def release(self, envelopes: Sequence[DeliveryEnvelope]) -> None:
        for envelope in envelopes:
            message = self._current(envelope)
            if message is not None:
                message.invisible_until = None

    async def dead_letter(self, envelope: DeliveryEnvelope, reason: str) -> None:
        message = self._current(envelope)
        if message is not None:
            self._divert(message, reason)

    def _divert(self, message: _StoredMessage, reason: str) -> None:
        del self._messages[message.envelope_id]
        self._dead_letters.append(
            DeadLetter(
                envelope=self._to_envelope(message),
                reason=reason,
                dead_lettered_at=datetime.now(timezone.utc),
            )
        )
        logger.warning(
            "%s - envelope dead-lettered",
            __name__,
            extra={
                "envelope_id": message.envelope_id,
                "delivery_count": message.delivery_count,
                "reason": reason,
            },
        )
