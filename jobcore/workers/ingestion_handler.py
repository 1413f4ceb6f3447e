"""
Ingestion arrival handler.

Receives object-store notifications, parses them into descriptors and
hands them to the ingestion gateway, which enqueues only admitted ones.
Unparseable records are logged and skipped; they never reach the channel.

Dependencies: jobcore.core.ingestion, jobcore.application.components
System role: Arrival boundary of the filtered batch-ingestion core
"""

import asyncio
import json
import logging
from typing import Any, Dict

from jobcore.application.components import get_component_cache
from jobcore.core.exceptions import EventParseError
from jobcore.core.ingestion.event_parser import parse_event
from jobcore.models.ingestion import EventDescriptor

logger = logging.getLogger(__name__)


def _records(event: Dict[str, Any]) -> list[Dict[str, Any]]:
    # Each record is parsed on its own so one bad record does not drop the rest
    records = event.get("Records")
    return records if isinstance(records, list) else [event]


def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Function handler for arrival notifications.

    Args:
        event: S3 notification, SQS/SNS-wrapped notification, or descriptor JSON
        context: Function context object

    Returns:
        Dict with statusCode and admitted/rejected/unparseable counts
    """
    descriptors: list[EventDescriptor] = []
    unparseable = 0
    for record in _records(event):
        try:
            descriptors.extend(parse_event(record))
        except EventParseError as e:
            unparseable += 1
            logger.warning("%s:handler - EventParseError: %s", __name__, e)

    report = asyncio.run(get_component_cache().gateway().accept(descriptors))

    logger.info(
        "%s:handler - Arrivals filtered",
        __name__,
        extra={"admitted": report.admitted, "rejected": report.rejected, "unparseable": unparseable},
    )
    return {
        "statusCode": 200,
        "body": json.dumps(
            {
                "admitted": report.admitted,
                "rejected": report.rejected,
                "unparseable": unparseable,
                "envelope_ids": report.envelope_ids,
            }
        ),
    }
