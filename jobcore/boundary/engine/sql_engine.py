"""
SQL query engine.

Runs a validated query against the backing data engine through
SQLAlchemy's async engine and returns rows as plain dictionaries. Every
query runs on a connection switched to read-only mode, so statements that
slip past submission validation still cannot write.

Dependencies: sqlalchemy
System role: Backing data engine for the long-running executor
"""

import logging
from typing import Any, Protocol

from pydantic import BaseModel, Field
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from jobcore.core.exceptions import ExecutionFailed
from jobcore.models.job import QuerySubmission

logger = logging.getLogger(__name__)


class QueryResult(BaseModel):
    """Rows produced by one query execution."""

    columns: list[str] = Field(default_factory=list)
    rows: list[dict[str, Any]] = Field(default_factory=list)
    truncated: bool = False


class QueryEngine(Protocol):
    """Anything the executor can run a submission against."""

    async def execute(self, submission: QuerySubmission) -> QueryResult: ...


class SqlQueryEngine:
    """Execute submissions on an async SQLAlchemy engine."""

    def __init__(self, engine: AsyncEngine, max_rows: int = 100_000) -> None:
        """
        Initialize engine wrapper.

        Args:
            engine: Async engine connected to the data engine
            max_rows: Rows kept before the result is marked truncated
        """
        self._engine = engine
        self._max_rows = max_rows

    async def execute(self, submission: QuerySubmission) -> QueryResult:
        """
        Run the query with bound parameters inside a read-only transaction.

        Args:
            submission: Validated query submission

        Returns:
            QueryResult: Column names and up to max_rows rows

        Raises:
            ExecutionFailed: The data engine rejected or failed the query
        """
        try:
            async with self._engine.connect() as conn:
                conn = await self._read_only(conn)
                try:
                    result = await conn.execute(text(submission.query), submission.parameters)
                    columns = list(result.keys())
                    fetched = result.mappings().fetchmany(self._max_rows + 1)
                finally:
                    await conn.rollback()
                    if conn.dialect.name == "sqlite":
                        await conn.exec_driver_sql("PRAGMA query_only = OFF")
        except SQLAlchemyError as e:
            logger.warning("%s:execute - %s: %s", __name__, type(e).__name__, e)
            raise ExecutionFailed(
                f"{type(e).__name__}: {e}",
                details={"upstream_error": type(e).__name__},
            ) from e

        truncated = len(fetched) > self._max_rows
        rows = [dict(row) for row in fetched[: self._max_rows]]
        return QueryResult(columns=columns, rows=rows, truncated=truncated)

    async def dispose(self) -> None:
        """Close pooled connections; the pool reopens on next use."""
        await self._engine.dispose()

    @staticmethod
    async def _read_only(conn: AsyncConnection) -> AsyncConnection:
        dialect = conn.dialect.name
        if dialect == "postgresql":
            return await conn.execution_options(postgresql_readonly=True)
        if dialect == "sqlite":
            await conn.exec_driver_sql("PRAGMA query_only = ON")
            return conn
        raise ExecutionFailed(
            f"No read-only mode for dialect {dialect}",
            details={"upstream_error": "UnsupportedDialect"},
        )
