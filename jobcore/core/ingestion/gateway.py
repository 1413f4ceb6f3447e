"""
Ingestion gateway.

Applies the admission filter to arriving descriptors and enqueues only
the admitted ones on the buffering channel.

Dependencies: jobcore.core.ingestion.filter, jobcore.boundary.queue
System role: Arrival boundary feeding the batch applier
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from jobcore.boundary.queue.base import BufferingChannel
from jobcore.core.ingestion.filter import partition
from jobcore.models.ingestion import EventDescriptor, IngestionRule

logger = logging.getLogger(__name__)


@dataclass
class AcceptReport:
    """Counts for one accept call."""

    admitted: int = 0
    rejected: int = 0
    envelope_ids: list[str] = field(default_factory=list)


class IngestionGateway:
    """Filter then enqueue."""

    def __init__(self, channel: BufferingChannel, rules: Sequence[IngestionRule]) -> None:
        self._channel = channel
        self._rules = list(rules)

    async def accept(self, descriptors: Iterable[EventDescriptor]) -> AcceptReport:
        """
        Admit and enqueue descriptors.

        Args:
            descriptors: Parsed arrivals

        Returns:
            AcceptReport: Admitted/rejected counts and the new envelope IDs

        Raises:
            StorageUnavailable: Channel rejected a send
        """
        admitted, rejected = partition(descriptors, self._rules)
        report = AcceptReport(admitted=len(admitted), rejected=len(rejected))

        for descriptor in rejected:
            logger.debug(
                "%s:accept - Descriptor not admitted",
                __name__,
                extra={"location": descriptor.location},
            )
        for descriptor in admitted:
            report.envelope_ids.append(await self._channel.send(descriptor))

        logger.info(
            "%s:accept - Descriptors filtered",
            __name__,
            extra={"admitted": report.admitted, "rejected": report.rejected},
        )
        return report
