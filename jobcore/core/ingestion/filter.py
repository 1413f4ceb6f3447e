"""
Ingestion filter.

Pure admission decision at the arrival boundary. Nothing rejected here
ever reaches the channel, so non-matching arrivals cost no downstream work.

Dependencies: jobcore.models.ingestion
System role: Cheap predicate in front of the buffering channel
"""

from typing import Iterable, Sequence

from jobcore.models.ingestion import EventDescriptor, IngestionRule


def admit(descriptor: EventDescriptor, rules: Sequence[IngestionRule]) -> bool:
    """
    Decide whether a descriptor enters the channel.

    Rules are OR-combined. An empty rule set admits nothing.

    Args:
        descriptor: Arrival descriptor
        rules: Configured admission rules

    Returns:
        bool: True when any rule matches
    """
    return any(rule.matches(descriptor) for rule in rules)


def partition(
    descriptors: Iterable[EventDescriptor],
    rules: Sequence[IngestionRule],
) -> tuple[list[EventDescriptor], list[EventDescriptor]]:
    """Split descriptors into (admitted, rejected), preserving order."""
    admitted: list[EventDescriptor] = []
    rejected: list[EventDescriptor] = []
    for descriptor in descriptors:
        (admitted if admit(descriptor, rules) else rejected).append(descriptor)
    return admitted, rejected
