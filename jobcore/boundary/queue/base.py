"""
Buffering channel and task publisher contracts.

The channel decouples arrival rate from processing rate: at-least-once
delivery, no ordering guarantee, a visibility window per claim, explicit
acknowledgement, and dead-lettering once the redelivery ceiling is reached.

Dependencies: jobcore.models
System role: Queue abstractions consumed by the batch applier and dispatcher
"""

import asyncio
import time
from typing import Protocol, Sequence

from jobcore.models.ingestion import DeliveryEnvelope, EventDescriptor
from jobcore.models.job import JobTask


class Clock(Protocol):
    """Monotonic time source with a matching sleep."""

    def monotonic(self) -> float: ...

    async def sleep(self, seconds: float) -> None: ...


class SystemClock:
    """Real time."""

    def monotonic(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class BufferingChannel(Protocol):
    """Contract every channel implementation honours."""

    async def send(self, descriptor: EventDescriptor) -> str:
        """Enqueue a descriptor; returns the envelope id."""
        ...

    async def receive(self, max_messages: int = 10, wait_seconds: float = 0.0) -> list[DeliveryEnvelope]:
        """Claim up to max_messages envelopes, waiting at most wait_seconds for the first."""
        ...

    async def ack(self, envelopes: Sequence[DeliveryEnvelope]) -> int:
        """Delete claimed envelopes; returns how many were deleted."""
        ...

    async def release(self, envelopes: Sequence[DeliveryEnvelope]) -> None:
        """Make claimed envelopes immediately eligible for redelivery."""
        ...

    async def dead_letter(self, envelope: DeliveryEnvelope, reason: str) -> None:
        """Divert a claimed envelope to dead-letter storage."""
        ...


class TaskPublisher(Protocol):
    """Fire-and-forget handoff from the dispatcher to the executor."""

    async def publish(self, task: JobTask) -> str:
        """Enqueue a task; returns a message id."""
        ...
