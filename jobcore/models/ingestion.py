"""
Ingestion domain models and schemas.

Event descriptors, admission rules, channel envelopes, batches and
per-item outcomes for the filtered batch-ingestion path.

Dependencies: pydantic
System role: Ingestion data contracts
"""

import enum
import posixpath
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

# Column limits of the ingestion target table
MAX_NATURAL_KEY_LENGTH = 512
MAX_LOCATION_LENGTH = 1024


class EventDescriptor(BaseModel):
    """Immutable fact about one external arrival (e.g. an object landing in a bucket)."""

    model_config = ConfigDict(frozen=True)

    location: str = Field(..., min_length=1, description="Hierarchical path + name")
    size: int = Field(default=0, ge=0, description="Payload size in bytes")
    arrived_at: datetime = Field(..., description="Arrival timestamp")
    content_type_hint: str | None = Field(default=None, description="e.g. 'json', 'csv'")

    @property
    def directory(self) -> str:
        """Path portion of the location, without the trailing name."""
        return posixpath.dirname(self.location)

    @property
    def name(self) -> str:
        """Final path segment of the location."""
        return posixpath.basename(self.location)


class IngestionRule(BaseModel):
    """
    One admission rule.

    A descriptor matches when its location starts with path_prefix and ends
    with suffix (literal, case-sensitive). When content_types is given the
    descriptor's hint must also be one of them.
    """

    model_config = ConfigDict(frozen=True)

    path_prefix: str = ""
    suffix: str = ""
    content_types: frozenset[str] | None = None

    def matches(self, descriptor: EventDescriptor) -> bool:
        if not descriptor.location.startswith(self.path_prefix):
            return False
        if not descriptor.location.endswith(self.suffix):
            return False
        if self.content_types is not None:
            return descriptor.content_type_hint in self.content_types
        return True


class DeliveryEnvelope(BaseModel):
    """One claimed delivery of a descriptor on the buffering channel."""

    model_config = ConfigDict(frozen=True)

    envelope_id: str
    descriptor: EventDescriptor
    delivery_count: int = Field(default=1, ge=1)
    enqueued_at: datetime
    visibility_deadline: datetime | None = None
    receipt: str = Field(default="", description="Opaque claim token for ack/release")


class BatchTrigger(str, enum.Enum):
    """Why a batch stopped accepting envelopes."""

    SIZE = "size"
    WINDOW = "window"


class Batch(BaseModel):
    """Envelopes claimed together for one processing cycle. Never persisted."""

    envelopes: list[DeliveryEnvelope] = Field(default_factory=list)
    trigger: BatchTrigger

    def __len__(self) -> int:
        return len(self.envelopes)


class ItemStatus(str, enum.Enum):
    """
    Per-envelope result of applying a batch.

    APPLIED: staged, committed and acknowledged
    REJECTED: failed validation; released for redelivery
    DEAD_LETTERED: diverted to dead-letter storage
    RETRY: released without judgement (commit failure or transient fetch error)
    """

    APPLIED = "applied"
    REJECTED = "rejected"
    DEAD_LETTERED = "dead_lettered"
    RETRY = "retry"


class ItemOutcome(BaseModel):
    """Accounting record for one envelope in an applied batch."""

    envelope_id: str
    status: ItemStatus
    natural_key: str | None = None
    error: str | None = None


class DeadLetter(BaseModel):
    """An envelope diverted from the primary path, kept for inspection."""

    envelope: DeliveryEnvelope
    reason: str
    dead_lettered_at: datetime


class IngestedRecord(BaseModel):
    """Validated, transformed payload ready for idempotent upsert."""

    natural_key: str
    source_location: str
    directory: str
    content_type: str
    size_bytes: int
    arrived_at: datetime
    payload: dict
    payload_sha256: str
