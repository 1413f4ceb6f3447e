"""
Test suite for arrival notification parsing.

System role: Verification of S3/SQS/SNS notification handling
"""

import json
from datetime import datetime, timezone

import pytest

from jobcore.core.exceptions import EventParseError
from jobcore.core.ingestion.event_parser import content_type_hint, parse_event


def _s3_record(key: str, size: int = 128, event_name: str = "ObjectCreated:Put") -> dict:
    return {
        "eventSource": "aws:s3",
        "eventName": event_name,
        "eventTime": "2025-03-01T10:15:30.000Z",
        "s3": {
            "bucket": {"name": "ingest-bucket"},
            "object": {"key": key, "size": size},
        },
    }


class TestParseEvent:
    """parse_event()."""

    def test_direct_s3_record(self) -> None:
        [descriptor] = parse_event(_s3_record("input/orders/a.json"))

        assert descriptor.location == "input/orders/a.json"
        assert descriptor.size == 128
        assert descriptor.content_type_hint == "json"
        assert descriptor.arrived_at == datetime(2025, 3, 1, 10, 15, 30, tzinfo=timezone.utc)

    def test_url_encoded_key_should_be_decoded(self) -> None:
        [descriptor] = parse_event(_s3_record("input/my+orders/a%281%29.json"))

        assert descriptor.location == "input/my orders/a(1).json"

    def test_records_wrapper_should_yield_every_record(self) -> None:
        event = {"Records": [_s3_record("input/a.json"), _s3_record("input/b.csv")]}

        descriptors = parse_event(event)

        assert [d.location for d in descriptors] == ["input/a.json", "input/b.csv"]
        assert [d.content_type_hint for d in descriptors] == ["json", "csv"]

    def test_sqs_wrapped_notification(self) -> None:
        record = {
            "messageId": "m-1",
            "body": json.dumps({"Records": [_s3_record("input/a.json")]}),
        }

        [descriptor] = parse_event(record)

        assert descriptor.location == "input/a.json"

    def test_sns_wrapped_notification_inside_sqs(self) -> None:
        sns = {"Type": "Notification", "Message": json.dumps({"Records": [_s3_record("input/a.json")]})}
        record = {"messageId": "m-1", "body": json.dumps(sns)}

        [descriptor] = parse_event(record)

        assert descriptor.location == "input/a.json"

    def test_plain_descriptor_json(self) -> None:
        [descriptor] = parse_event(
            {"location": "input/a.json", "size": 10, "arrived_at": "2025-01-01T00:00:00Z"}
        )

        assert descriptor.location == "input/a.json"
        assert descriptor.content_type_hint == "json"

    def test_removal_and_test_events_should_yield_nothing(self) -> None:
        assert parse_event(_s3_record("input/a.json", event_name="ObjectRemoved:Delete")) == []
        assert parse_event({"Event": "s3:TestEvent", "Bucket": "ingest-bucket"}) == []

    @pytest.mark.parametrize(
        "event",
        [
            {"body": ""},
            {"body": "{not json"},
            {"unexpected": True},
            {"eventSource": "aws:s3", "eventName": "ObjectCreated:Put", "s3": {"object": {}}},
            {"location": "input/a.json", "size": -1},
        ],
    )
    def test_malformed_notifications_should_raise(self, event) -> None:
        with pytest.raises(EventParseError):
            parse_event(event)


def test_content_type_hint_from_extension() -> None:
    assert content_type_hint("input/a.JSON") == "json"
    assert content_type_hint("input/a.tar.gz") == "gz"
    assert content_type_hint("input/README") is None
