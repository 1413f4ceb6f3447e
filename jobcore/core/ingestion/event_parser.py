"""
Arrival notification parsing.

Turns object-store notifications into EventDescriptors. Accepts S3 event
notifications directly, wrapped in a Records array, or delivered through
SQS and SNS envelopes, as well as plain descriptor JSON.

Dependencies: pydantic, urllib
System role: Arrival boundary in front of the ingestion filter
"""

import json
import logging
import posixpath
from datetime import datetime, timezone
from typing import Any
from urllib.parse import unquote_plus

from pydantic import ValidationError

from jobcore.core.exceptions import EventParseError
from jobcore.models.ingestion import EventDescriptor

logger = logging.getLogger(__name__)


def content_type_hint(location: str) -> str | None:
    """Lower-cased file extension without the dot, e.g. 'json'."""
    _, ext = posixpath.splitext(location)
    return ext[1:].lower() or None


def parse_event(event: dict[str, Any]) -> list[EventDescriptor]:
    """
    Parse one notification into descriptors.

    Non-creation S3 events (removals, test events) yield nothing.

    Args:
        event: Notification, SQS record, SNS envelope or descriptor JSON

    Returns:
        list[EventDescriptor]: Zero or more descriptors

    Raises:
        EventParseError: Shape not recognised or fields invalid
    """
    try:
        return _parse(event)
    except json.JSONDecodeError as e:
        logger.error("%s:parse_event - JSONDecodeError: %s", __name__, e)
        raise EventParseError(f"Invalid JSON in notification: {e}") from e
    except ValidationError as e:
        logger.error("%s:parse_event - ValidationError: %s", __name__, e)
        raise EventParseError(f"Invalid descriptor fields: {e}") from e


def _parse(event: Any) -> list[EventDescriptor]:
    if not isinstance(event, dict):
        raise EventParseError(f"Notification must be an object, got {type(event).__name__}")

    # SQS record: the notification is the JSON body
    if "body" in event:
        body = event.get("body")
        if not body:
            raise EventParseError("Empty message body")
        return _parse(json.loads(body))

    # SNS envelope
    if event.get("Type") == "Notification" and "Message" in event:
        return _parse(json.loads(event["Message"]))

    if "Records" in event:
        descriptors: list[EventDescriptor] = []
        for record in event.get("Records") or []:
            descriptors.extend(_parse(record))
        return descriptors

    if event.get("eventSource") == "aws:s3":
        descriptor = _parse_s3_record(event)
        return [descriptor] if descriptor else []

    if event.get("Event") == "s3:TestEvent":
        return []

    if "location" in event:
        fields = dict(event)
        fields.setdefault("arrived_at", datetime.now(timezone.utc))
        fields.setdefault("content_type_hint", content_type_hint(fields["location"]))
        return [EventDescriptor.model_validate(fields)]

    raise EventParseError(f"Unrecognised notification keys: {sorted(event)}")


def _parse_s3_record(record: dict[str, Any]) -> EventDescriptor | None:
    event_name = record.get("eventName", "")
    if not event_name.startswith("ObjectCreated"):
        logger.debug("%s:_parse_s3_record - Ignoring %s", __name__, event_name)
        return None

    object_info = record.get("s3", {}).get("object", {})
    # S3 URL-encodes keys in notifications, with spaces as '+'
    key = unquote_plus(object_info.get("key", ""))
    if not key:
        raise EventParseError("Missing S3 object key")

    descriptor = EventDescriptor(
        location=key,
        size=object_info.get("size", 0),
        arrived_at=record.get("eventTime") or datetime.now(timezone.utc),
        content_type_hint=content_type_hint(key),
    )
    logger.info(
        "%s:_parse_s3_record - Parsed S3 event",
        __name__,
        extra={"location": key, "size": descriptor.size},
    )
    return descriptor
