"""
Ingested record ORM model.

Target table of the batch applier. Every row is keyed by a stable natural
key so that redelivered envelopes upsert instead of duplicating.

Dependencies: sqlalchemy, jobcore.boundary.db.base
System role: Persistent store for validated ingestion payloads
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from jobcore.boundary.db.base import Base, UUIDMixin, TimestampMixin
from jobcore.models.ingestion import MAX_LOCATION_LENGTH, MAX_NATURAL_KEY_LENGTH


class IngestedRecordModel(Base, UUIDMixin, TimestampMixin):
    """
    One validated payload landed through the ingestion path.

    Constraints:
        natural_key: UNIQUE; conflict target of the batch upsert
    """

    __tablename__ = "ingested_records"

    natural_key: Mapped[str] = mapped_column(String(MAX_NATURAL_KEY_LENGTH), nullable=False, unique=True)
    source_location: Mapped[str] = mapped_column(String(MAX_LOCATION_LENGTH), nullable=False)
    directory: Mapped[str] = mapped_column(String(MAX_LOCATION_LENGTH), nullable=False, default="")
    content_type: Mapped[str] = mapped_column(String(64), nullable=False)
    size_bytes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    arrived_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    payload_sha256: Mapped[str] = mapped_column(String(64), nullable=False)
