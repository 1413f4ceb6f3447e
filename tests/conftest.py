"""
Shared test fixtures and configuration for entire test suite.

Provides: in-memory SQLite session factory, fake clock, object store and
query engine doubles, caller identities
Dependencies: pytest, pytest-asyncio, sqlalchemy, aiosqlite
System role: Test infrastructure and fixture management
"""

import asyncio
import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from jobcore.boundary.aws.s3_client import S3ObjectClient, S3ObjectNotFoundError
from jobcore.boundary.engine.sql_engine import QueryResult
from jobcore.models.ingestion import EventDescriptor
from jobcore.models.job import CallerIdentity


class FakeClock:
    """Deterministic clock: sleep advances time instantly."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def monotonic(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.now += max(seconds, 0.0)
        await asyncio.sleep(0)

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


async def _memory_session_factory(savepoints: bool = False):
    from sqlalchemy import event
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
    from sqlalchemy.pool import StaticPool

    from jobcore.boundary.db.base import Base
    from jobcore.boundary.db import models  # noqa: F401

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    if savepoints:
        # Hand BEGIN to SQLAlchemy so SAVEPOINT nests inside a real transaction
        @event.listens_for(engine.sync_engine, "connect")
        def _no_driver_transactions(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(engine.sync_engine, "begin")
        def _emit_begin(conn):
            conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(
        engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def session_factory():
    """
    Session factory over an in-memory SQLite database with all tables created.

    Yields:
        async_sessionmaker: Factory whose sessions share one in-memory database
    """
    async for factory in _memory_session_factory():
        yield factory


@pytest.fixture
async def savepoint_session_factory():
    """
    Like session_factory, but with real transactions so begin_nested() works.

    Sessions must not overlap: they share one connection.
    """
    async for factory in _memory_session_factory(savepoints=True):
        yield factory


@pytest.fixture
async def test_async_db(session_factory):
    """
    Create a test database session.

    Yields:
        AsyncSession: Session with cleanup
    """
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def owner() -> CallerIdentity:
    return CallerIdentity(subject="user-1")


@pytest.fixture
def stranger() -> CallerIdentity:
    return CallerIdentity(subject="user-2")


@pytest.fixture
def admin() -> CallerIdentity:
    return CallerIdentity(subject="ops-1", roles=frozenset({"admin"}))


@pytest.fixture
def object_store() -> dict[str, bytes]:
    """Backing dict for the object client double."""
    return {}


@pytest.fixture
def mock_s3_object_client(object_store: dict[str, bytes]) -> MagicMock:
    """
    S3ObjectClient double backed by a dict.

    Returns:
        MagicMock: put_bytes/get_bytes/generate_presigned_download_url wired to object_store
    """
    client = MagicMock(spec=S3ObjectClient)
    client.bucket = "test-bucket"

    def put_bytes(key, body, content_type="application/octet-stream", metadata=None):
        object_store[key] = body

    def get_bytes(key):
        if key not in object_store:
            raise S3ObjectNotFoundError(f"File not found in S3: {key}", key)
        return object_store[key]

    def presign(key, expires_in=3600):
        return (
            f"https://test-bucket.s3.amazonaws.com/{key}?X-Amz-Expires={expires_in}",
            datetime(2030, 1, 1, tzinfo=timezone.utc),
        )

    client.put_bytes.side_effect = put_bytes
    client.get_bytes.side_effect = get_bytes
    client.generate_presigned_download_url.side_effect = presign
    return client


@pytest.fixture
def mock_query_engine() -> AsyncMock:
    """Query engine returning two rows."""
    engine = AsyncMock()
    engine.execute = AsyncMock(
        return_value=QueryResult(
            columns=["id", "name"],
            rows=[{"id": 1, "name": "alpha"}, {"id": 2, "name": "beta"}],
        )
    )
    return engine


@pytest.fixture
def mock_publisher() -> AsyncMock:
    publisher = AsyncMock()
    publisher.publish = AsyncMock(side_effect=lambda task: f"msg-{task.job_id}")
    return publisher


@pytest.fixture
def valid_payload() -> dict:
    return {"query": "SELECT id, name FROM widgets WHERE owner = :owner", "parameters": {"owner": "user-1"}}


def make_descriptor(
    location: str = "input/orders/order-1.json",
    size: int = 64,
    hint: str | None = "json",
    arrived_at: datetime | None = None,
) -> EventDescriptor:
    return EventDescriptor(
        location=location,
        size=size,
        arrived_at=arrived_at or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc),
        content_type_hint=hint,
    )


@pytest.fixture
def job_id() -> uuid.UUID:
    """Generate a test job ID."""
    return uuid.uuid4()


@pytest.fixture
def descriptor_factory():
    """Build EventDescriptors with sensible defaults."""
    return make_descriptor
