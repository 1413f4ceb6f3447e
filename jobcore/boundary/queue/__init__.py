"""
Queue boundary modules.

Exports: BufferingChannel, TaskPublisher, InMemoryChannel, SqsChannel,
SqsTaskPublisher, LocalTaskPublisher, SystemClock
"""

from .base import BufferingChannel, Clock, SystemClock, TaskPublisher
from .memory_channel import InMemoryChannel
from .sqs_channel import SqsChannel
from .task_publisher import LocalTaskPublisher, SqsTaskPublisher

__all__ = [
    "BufferingChannel",
    "Clock",
    "InMemoryChannel",
    "LocalTaskPublisher",
    "SqsChannel",
    "SqsTaskPublisher",
    "SystemClock",
    "TaskPublisher",
]
