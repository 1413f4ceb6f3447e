"""
Payload transformer.

Fetches the payload an admitted descriptor points at, validates it and
shapes it into an IngestedRecord carrying a stable natural key, so that
reapplying the same payload converges on one row.

Dependencies: jobcore.boundary.aws, json, csv
System role: Per-item fetch/validate/transform step of the batch applier
"""

import asyncio
import csv
import hashlib
import io
import json
import logging
from typing import Any

from jobcore.boundary.aws.s3_client import S3ObjectClient, S3ObjectError, S3ObjectNotFoundError
from jobcore.core.exceptions import StorageUnavailable, ValidationFailed
from jobcore.models.ingestion import (
    MAX_LOCATION_LENGTH,
    MAX_NATURAL_KEY_LENGTH,
    EventDescriptor,
    IngestedRecord,
)

logger = logging.getLogger(__name__)

_CONTENT_TYPES = {"json": "application/json", "csv": "text/csv"}


class PayloadTransformer:
    """Fetch, validate and transform one descriptor's payload."""

    def __init__(
        self,
        s3_client: S3ObjectClient,
        max_payload_bytes: int = 10 * 1024 * 1024,
        natural_key_field: str = "id",
    ) -> None:
        """
        Initialize transformer.

        Args:
            s3_client: Object client bound to the payload bucket
            max_payload_bytes: Upper size limit for a payload
            natural_key_field: Payload field used for the natural key when present
        """
        self._s3 = s3_client
        self._max_bytes = max_payload_bytes
        self._key_field = natural_key_field

    async def transform(self, descriptor: EventDescriptor) -> IngestedRecord:
        """
        Produce the record to upsert for a descriptor.

        Args:
            descriptor: Admitted arrival

        Returns:
            IngestedRecord: Validated record with its natural key

        Raises:
            ValidationFailed: Payload missing, oversized or malformed
            StorageUnavailable: Object store failed transiently
        """
        location = descriptor.location
        if len(location) > MAX_LOCATION_LENGTH:
            raise ValidationFailed(
                f"Location longer than {MAX_LOCATION_LENGTH} characters",
                location=location[:MAX_LOCATION_LENGTH],
            )
        if descriptor.size > self._max_bytes:
            raise ValidationFailed(
                f"Payload of {descriptor.size} bytes exceeds limit of {self._max_bytes}",
                location=location,
            )

        try:
            body = await asyncio.to_thread(self._s3.get_bytes, location)
        except S3ObjectNotFoundError as e:
            raise ValidationFailed(f"Payload not found: {location}", location=location) from e
        except S3ObjectError as e:
            raise StorageUnavailable(str(e), operation="get_payload", details={"location": location}) from e

        if len(body) > self._max_bytes:
            raise ValidationFailed(
                f"Payload of {len(body)} bytes exceeds limit of {self._max_bytes}",
                location=location,
            )

        kind = descriptor.content_type_hint or "json"
        if kind == "json":
            payload = self._decode_json(body, location)
        elif kind == "csv":
            payload = self._decode_csv(body, location)
        else:
            raise ValidationFailed(f"Unsupported content type: {kind}", location=location)

        natural_key = self.natural_key(descriptor, payload)
        if len(natural_key) > MAX_NATURAL_KEY_LENGTH:
            raise ValidationFailed(
                f"Natural key longer than {MAX_NATURAL_KEY_LENGTH} characters",
                location=location,
            )

        return IngestedRecord(
            natural_key=natural_key,
            source_location=location,
            directory=descriptor.directory,
            content_type=_CONTENT_TYPES[kind],
            size_bytes=len(body),
            arrived_at=descriptor.arrived_at,
            payload=payload,
            payload_sha256=hashlib.sha256(body).hexdigest(),
        )

    def natural_key(self, descriptor: EventDescriptor, payload: dict[str, Any]) -> str:
        """
        Stable unique key for a payload.

        Uses `{directory}:{payload[field]}` when the payload carries a scalar
        key field, otherwise a SHA-256 over the immutable descriptor fields.
        """
        value = payload.get(self._key_field)
        if isinstance(value, (str, int)) and not isinstance(value, bool) and str(value):
            return f"{descriptor.directory}:{value}"
        seed = f"{descriptor.location}|{descriptor.arrived_at.isoformat()}"
        return hashlib.sha256(seed.encode("utf-8")).hexdigest()

    @staticmethod
    def _decode_json(body: bytes, location: str) -> dict[str, Any]:
        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ValidationFailed(f"Invalid JSON payload: {e}", location=location) from e
        if not isinstance(payload, dict):
            raise ValidationFailed(
                f"JSON payload must be an object, got {type(payload).__name__}",
                location=location,
            )
        return payload

    @staticmethod
    def _decode_csv(body: bytes, location: str) -> dict[str, Any]:
        try:
            text = body.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ValidationFailed(f"CSV payload is not UTF-8: {e}", location=location) from e
        reader = csv.DictReader(io.StringIO(text))
        if not reader.fieldnames:
            raise ValidationFailed("CSV payload has no header row", location=location)
        rows = []
        for line_no, row in enumerate(reader, start=2):
            if None in row or None in row.values():
                raise ValidationFailed(
                    f"CSV row {line_no} does not match the header",
                    location=location,
                )
            rows.append(row)
        return {"columns": list(reader.fieldnames), "rows": rows}
