"""
Component cache.

Builds the long-lived collaborators (object clients, channel, publisher,
executor, applier) from settings once per process. Shared by the API and
the workers so both wire the same implementations.

Dependencies: jobcore.configs, jobcore.boundary, jobcore.core
System role: Process-level composition root
"""

import logging

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine

from jobcore.boundary.aws.s3_client import S3ObjectClient
from jobcore.boundary.db.connection import get_async_engine, get_async_session_factory
from jobcore.boundary.engine.sql_engine import SqlQueryEngine
from jobcore.boundary.queue import InMemoryChannel, LocalTaskPublisher, SqsChannel, SqsTaskPublisher
from jobcore.configs import Settings, get_settings
from jobcore.core.executor import LongRunningExecutor
from jobcore.core.ingestion.batch_applier import BatchApplier
from jobcore.core.ingestion.gateway import IngestionGateway
from jobcore.core.ingestion.transformer import PayloadTransformer
from jobcore.core.reaper import StaleJobReaper
from jobcore.core.result_store import ResultStore

logger = logging.getLogger(__name__)


class ComponentCache:
    """Container for cached component instances."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings
        self._result_store = None
        self._query_engine = None
        self._executor = None
        self._task_publisher = None
        self._channel = None
        self._transformer = None

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    @property
    def result_store(self) -> ResultStore:
        """Get cached result store."""
        if self._result_store is None:
            config = self.settings.s3_results
            self._result_store = ResultStore(
                S3ObjectClient(bucket=config.bucket, region=config.region),
                key_prefix=config.key_prefix,
                handle_expiry=config.presigned_url_expiry,
            )
        return self._result_store

    @property
    def query_engine(self) -> SqlQueryEngine:
        """
        Get cached data engine.

        Submitted queries must never see the job ledger, so the data engine
        has to live in its own database.

        Raises:
            RuntimeError: QUERY_ENGINE_URL unset or pointing at the ledger database
        """
        if self._query_engine is None:
            config = self.settings.query_engine
            if not config.url:
                raise RuntimeError("QUERY_ENGINE_URL must be set to a database separate from the job ledger")
            ledger_url = make_url(self.settings.database.async_database_url)
            if make_url(config.url).set(query={}) == ledger_url.set(query={}):
                raise RuntimeError("QUERY_ENGINE_URL must not point at the job ledger database")
            engine = create_async_engine(config.url, pool_pre_ping=True)
            self._query_engine = SqlQueryEngine(engine, max_rows=config.max_rows)
        return self._query_engine

    @property
    def executor(self) -> LongRunningExecutor:
        """Get cached executor."""
        if self._executor is None:
            config = self.settings.executor
            self._executor = LongRunningExecutor(
                get_async_session_factory(),
                self.result_store,
                self.query_engine,
                max_execution_seconds=config.max_execution_seconds,
                error_message_max_length=config.error_message_max_length,
            )
        return self._executor

    @property
    def task_publisher(self) -> SqsTaskPublisher | LocalTaskPublisher:
        """Get cached task publisher; local in-process dispatch when no queue is configured."""
        if self._task_publisher is None:
            config = self.settings.channel
            if config.task_queue_url:
                self._task_publisher = SqsTaskPublisher(config.task_queue_url, region=config.region)
            else:
                logger.warning("%s - No task queue configured, dispatching in-process", __name__)
                self._task_publisher = LocalTaskPublisher(self.executor.run)
        return self._task_publisher

    @property
    def channel(self) -> SqsChannel | InMemoryChannel:
        """Get cached buffering channel; in-memory when no queue is configured."""
        if self._channel is None:
            config = self.settings.channel
            if config.ingestion_queue_url:
                self._channel = SqsChannel(
                    config.ingestion_queue_url,
                    config.dead_letter_queue_url,
                    region=config.region,
                    visibility_timeout=config.visibility_timeout_seconds,
                    max_receive_count=config.max_receive_count,
                )
            else:
                logger.warning("%s - No ingestion queue configured, using in-memory channel", __name__)
                self._channel = InMemoryChannel(
                    visibility_timeout=config.visibility_timeout_seconds,
                    max_receive_count=config.max_receive_count,
                )
        return self._channel

    @property
    def transformer(self) -> PayloadTransformer:
        """Get cached payload transformer."""
        if self._transformer is None:
            config = self.settings.batch
            self._transformer = PayloadTransformer(
                S3ObjectClient(bucket=config.payload_bucket, region=config.payload_region),
                max_payload_bytes=config.max_payload_bytes,
                natural_key_field=config.natural_key_field,
            )
        return self._transformer

    def gateway(self) -> IngestionGateway:
        return IngestionGateway(self.channel, self.settings.ingestion.rules)

    def batch_applier(self) -> BatchApplier:
        batch = self.settings.batch
        channel = self.settings.channel
        return BatchApplier(
            self.channel,
            get_async_session_factory(),
            self.transformer,
            max_batch_size=batch.max_batch_size,
            window_seconds=batch.window_seconds,
            receive_chunk_size=batch.receive_chunk_size,
            receive_wait_seconds=channel.receive_wait_seconds,
            max_receive_count=channel.max_receive_count,
        )

    def reaper(self) -> StaleJobReaper:
        config = self.settings.executor
        return StaleJobReaper(
            get_async_session_factory(),
            self.task_publisher,
            max_execution_seconds=config.max_execution_seconds,
            stale_grace_seconds=config.stale_grace_seconds,
            pending_redispatch_seconds=config.pending_redispatch_seconds,
            batch_limit=config.reaper_batch_limit,
        )

    async def drain(self) -> None:
        """Wait for in-process executions started through a local publisher."""
        if isinstance(self._task_publisher, LocalTaskPublisher):
            await self._task_publisher.drain()

    async def dispose_engines(self) -> None:
        """
        Close pooled connections of the ledger and data engines.

        Connections are bound to the event loop that opened them, so
        per-invocation handlers call this before their loop ends.
        """
        if self._query_engine is not None:
            await self._query_engine.dispose()
        await get_async_engine().dispose()

    def clear(self) -> None:
        """Clear all cached instances."""
        self._result_store = None
        self._query_engine = None
        self._executor = None
        self._task_publisher = None
        self._channel = None
        self._transformer = None


# Global component cache
_component_cache = ComponentCache()


def get_component_cache() -> ComponentCache:
    """Get component cache singleton."""
    return _component_cache
