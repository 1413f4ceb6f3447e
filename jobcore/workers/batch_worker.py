"""
Batch worker.

Long-running loop that forms batches from the buffering channel and
applies them. Several workers may run side by side; the channel's
visibility timeout keeps their batches disjoint.

Usage:
    python -m jobcore.workers.batch_worker

Dependencies: jobcore.core.ingestion, jobcore.application.components, python-dotenv
System role: Consumer process of the filtered batch-ingestion core
"""

import asyncio
import logging
import signal

from dotenv import load_dotenv

from jobcore.application.components import get_component_cache
from jobcore.boundary.db.connection import get_async_engine
from jobcore.boundary.queue.base import Clock, SystemClock
from jobcore.configs import get_settings
from jobcore.core.exceptions import StorageUnavailable
from jobcore.core.ingestion.batch_applier import BatchApplier
from jobcore.models.ingestion import ItemOutcome
from jobcore.observability.correlation import clear_correlation_id, set_correlation_id
from jobcore.observability.logger import configure_logging

logger = logging.getLogger(__name__)


class BatchWorker:
    """Drive a BatchApplier until told to stop."""

    def __init__(
        self,
        applier: BatchApplier,
        idle_sleep_seconds: float = 1.0,
        clock: Clock | None = None,
    ) -> None:
        self._applier = applier
        self._idle_sleep = idle_sleep_seconds
        self._clock = clock or SystemClock()
        self._stopping = asyncio.Event()

    def stop(self) -> None:
        self._stopping.set()

    async def run_once(self) -> list[ItemOutcome]:
        """Form and apply one batch."""
        correlation_id = set_correlation_id()
        try:
            batch = await self._applier.form_batch()
            if not batch.envelopes:
                return []
            logger.info(
                "%s:run_once - Batch formed",
                __name__,
                extra={"batch_id": correlation_id, "size": len(batch), "trigger": batch.trigger.value},
            )
            return await self._applier.apply(batch)
        finally:
            clear_correlation_id()

    async def run_forever(self) -> None:
        """Loop until stop() is called. Channel outages back off and retry."""
        while not self._stopping.is_set():
            try:
                outcomes = await self.run_once()
            except StorageUnavailable as e:
                logger.error("%s:run_forever - StorageUnavailable: %s", __name__, e)
                outcomes = []
            if not outcomes and not self._stopping.is_set():
                await self._clock.sleep(self._idle_sleep)
        logger.info("%s:run_forever - Worker stopped", __name__)


async def main() -> None:
    cache = get_component_cache()
    worker = BatchWorker(
        cache.batch_applier(),
        idle_sleep_seconds=cache.settings.batch.idle_sleep_seconds,
    )

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, worker.stop)

    try:
        await worker.run_forever()
    finally:
        await get_async_engine().dispose()


if __name__ == "__main__":
    load_dotenv()
    configure_logging(get_settings().log_level)
    asyncio.run(main())
