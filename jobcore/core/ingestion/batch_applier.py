"""
Batch Applier.

Drains a bounded batch of envelopes from the buffering channel and
applies all of them to the persistent store in one transaction. Item
failures are isolated: a malformed payload, or a row the store refuses
inside its savepoint, is released (or dead-lettered once out of
deliveries) while the rest of the batch commits. A failed commit
acknowledges and dead-letters nothing, so the whole batch is redelivered
and reapplied through idempotent upserts.

Dependencies: sqlalchemy, jobcore.boundary.queue, jobcore.boundary.db
System role: Consumer side of the filtered batch-ingestion core
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy.exc import DataError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from jobcore.boundary.db.CRUD.ingested_record_crud import ingested_record_crud
from jobcore.boundary.queue.base import BufferingChannel, Clock, SystemClock
from jobcore.core.exceptions import RedeliveryExhausted, StorageUnavailable, ValidationFailed
from jobcore.core.ingestion.transformer import PayloadTransformer
from jobcore.models.ingestion import (
    Batch,
    BatchTrigger,
    DeliveryEnvelope,
    ItemOutcome,
    ItemStatus,
)

logger = logging.getLogger(__name__)


@dataclass
class _Pending:
    """Envelopes sorted by what happens to them once the transaction ends."""

    staged: list[tuple[DeliveryEnvelope, str]] = field(default_factory=list)
    rejected: list[tuple[DeliveryEnvelope, str]] = field(default_factory=list)
    retry: list[tuple[DeliveryEnvelope, str]] = field(default_factory=list)


class BatchApplier:
    """Form batches from the channel and apply them atomically."""

    def __init__(
        self,
        channel: BufferingChannel,
        session_factory: async_sessionmaker[AsyncSession],
        transformer: PayloadTransformer,
        max_batch_size: int = 100,
        window_seconds: float = 55.0,
        receive_chunk_size: int = 10,
        receive_wait_seconds: float = 20.0,
        max_receive_count: int = 3,
        clock: Clock | None = None,
    ) -> None:
        """
        Initialize applier.

        Args:
            channel: Buffering channel to drain
            session_factory: Factory for the per-batch session
            transformer: Per-item fetch/validate/transform step
            max_batch_size: Size threshold closing a batch
            window_seconds: Time window closing a batch
            receive_chunk_size: Envelopes requested per receive call
            receive_wait_seconds: Longest single wait for the channel
            max_receive_count: Delivery ceiling; a failing item at the ceiling is dead-lettered
            clock: Time source (injectable for deterministic tests)
        """
        self._channel = channel
        self._session_factory = session_factory
        self._transformer = transformer
        self._max_batch_size = max_batch_size
        self._window_seconds = window_seconds
        self._chunk = receive_chunk_size
        self._receive_wait = receive_wait_seconds
        self._max_receive_count = max_receive_count
        self._clock = clock or SystemClock()

    async def form_batch(self) -> Batch:
        """
        Claim envelopes until the size threshold or the window is reached.

        Returns:
            Batch: Possibly empty when nothing arrived within the window
        """
        started = self._clock.monotonic()
        envelopes: list[DeliveryEnvelope] = []

        while len(envelopes) < self._max_batch_size:
            remaining = self._window_seconds - (self._clock.monotonic() - started)
            if remaining <= 0:
                return Batch(envelopes=envelopes, trigger=BatchTrigger.WINDOW)
            envelopes.extend(
                await self._channel.receive(
                    max_messages=min(self._chunk, self._max_batch_size - len(envelopes)),
                    wait_seconds=min(remaining, self._receive_wait),
                )
            )

        return Batch(envelopes=envelopes, trigger=BatchTrigger.SIZE)

    async def apply(self, batch: Batch) -> list[ItemOutcome]:
        """
        Apply a batch in one transaction.

        Args:
            batch: Envelopes claimed by form_batch

        Returns:
            list[ItemOutcome]: One outcome per envelope, in batch order

        Raises:
            StorageUnavailable: Channel rejected the acknowledgement pass
        """
        if not batch.envelopes:
            return []

        pending = _Pending()
        committed = False

        async with self._session_factory() as session:
            try:
                for envelope in batch.envelopes:
                    await self._stage(session, envelope, pending)
                await session.commit()
                committed = True
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(
                    "%s:apply - Batch transaction failed: %s: %s",
                    __name__,
                    type(e).__name__,
                    e,
                    extra={"batch_size": len(batch)},
                )

        outcomes: dict[str, ItemOutcome] = {}

        if committed:
            await self._channel.ack([envelope for envelope, _ in pending.staged])
            for envelope, natural_key in pending.staged:
                outcomes[envelope.envelope_id] = ItemOutcome(
                    envelope_id=envelope.envelope_id,
                    status=ItemStatus.APPLIED,
                    natural_key=natural_key,
                )
        else:
            # Nothing from a failed transaction leaves the primary channel,
            # not even items already judged invalid.
            pending.retry.extend(
                (envelope, "batch commit failed")
                for envelope, _ in pending.staged + pending.rejected
            )
            pending.rejected = []
            # Items never reached when staging aborted are retried too.
            judged = {e.envelope_id for e, _ in pending.retry}
            pending.retry.extend(
                (envelope, "batch commit failed")
                for envelope in batch.envelopes
                if envelope.envelope_id not in judged
            )

        if pending.retry:
            await self._channel.release([envelope for envelope, _ in pending.retry])
            for envelope, reason in pending.retry:
                outcomes[envelope.envelope_id] = ItemOutcome(
                    envelope_id=envelope.envelope_id,
                    status=ItemStatus.RETRY,
                    error=reason,
                )

        for envelope, reason in pending.rejected:
            outcomes[envelope.envelope_id] = await self._reject(envelope, reason)

        ordered = [outcomes[envelope.envelope_id] for envelope in batch.envelopes]
        logger.info(
            "%s:apply - Batch applied",
            __name__,
            extra={
                "batch_size": len(batch),
                "trigger": batch.trigger.value,
                "committed": committed,
                **{
                    status.value: sum(1 for o in ordered if o.status is status)
                    for status in ItemStatus
                },
            },
        )
        return ordered

    async def _stage(
        self,
        session: AsyncSession,
        envelope: DeliveryEnvelope,
        pending: _Pending,
    ) -> None:
        try:
            record = await self._transformer.transform(envelope.descriptor)
        except ValidationFailed as e:
            pending.rejected.append((envelope, e.message))
            return
        except StorageUnavailable as e:
            pending.retry.append((envelope, e.message))
            return

        # A row the store refuses only rolls back its own savepoint; any
        # other SQLAlchemyError propagates and aborts the whole batch.
        try:
            async with session.begin_nested():
                await ingested_record_crud.upsert(session, record)
        except (DataError, IntegrityError) as e:
            pending.rejected.append((envelope, f"Store refused record: {type(e).__name__}: {e.orig}"))
            return
        pending.staged.append((envelope, record.natural_key))

    async def _reject(self, envelope: DeliveryEnvelope, reason: str) -> ItemOutcome:
        if envelope.delivery_count >= self._max_receive_count:
            exhausted = RedeliveryExhausted(envelope.envelope_id, envelope.delivery_count)
            await self._channel.dead_letter(envelope, f"{exhausted.message}: {reason}")
            return ItemOutcome(
                envelope_id=envelope.envelope_id,
                status=ItemStatus.DEAD_LETTERED,
                error=reason,
            )

        logger.warning(
            "%s:_reject - Item failed validation",
            __name__,
            extra={
                "envelope_id": envelope.envelope_id,
                "delivery_count": envelope.delivery_count,
                "reason": reason,
            },
        )
        await self._channel.release([envelope])
        return ItemOutcome(
            envelope_id=envelope.envelope_id,
            status=ItemStatus.REJECTED,
            error=reason,
        )
