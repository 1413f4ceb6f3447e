"""
Ingested record CRUD operations.

Provides the idempotent upsert used by the batch applier. The statement
is built with the dialect's own INSERT ... ON CONFLICT so repeated
application of the same payload converges on one row.

Dependencies: sqlalchemy, jobcore.boundary.db.models.ingested_record_model
System role: Persistence for the ingestion target table
"""

import uuid

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from jobcore.boundary.db.base import utcnow
from jobcore.boundary.db.models.ingested_record_model import IngestedRecordModel
from jobcore.boundary.db.CRUD.base_crud import BaseCRUD
from jobcore.models.ingestion import IngestedRecord

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}

_UPDATABLE_COLUMNS = (
    "source_location",
    "directory",
    "content_type",
    "size_bytes",
    "arrived_at",
    "payload",
    "payload_sha256",
    "updated_at",
)


class IngestedRecordCRUD(BaseCRUD[IngestedRecordModel]):
    """CRUD operations for IngestedRecordModel."""

    def __init__(self) -> None:
        """Initialize IngestedRecordCRUD with IngestedRecordModel."""
        super().__init__(IngestedRecordModel)

    async def upsert(self, session: AsyncSession, record: IngestedRecord) -> None:
        """
        Stage an insert-or-update keyed by natural_key.

        Does not commit; the caller owns the transaction.

        Args:
            session: Async database session inside an open transaction
            record: Validated record

        Raises:
            NotImplementedError: Dialect without ON CONFLICT support
        """
        dialect = session.get_bind().dialect.name
        insert = _UPSERT_DIALECTS.get(dialect)
        if insert is None:
            raise NotImplementedError(f"Upsert not supported for dialect {dialect}")

        now = utcnow()
        values = record.model_dump()
        values.update(id=uuid.uuid4(), created_at=now, updated_at=now)

        stmt = insert(IngestedRecordModel).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[IngestedRecordModel.natural_key],
            set_={name: stmt.excluded[name] for name in _UPDATABLE_COLUMNS},
        )
        await session.execute(stmt)

    async def get_by_natural_key(
        self,
        session: AsyncSession,
        natural_key: str,
    ) -> IngestedRecordModel | None:
        """
        Retrieve a record by its natural key.

        Args:
            session: Async database session
            natural_key: Stable key derived during transformation

        Returns:
            IngestedRecordModel if found, None otherwise
        """
        stmt = select(IngestedRecordModel).where(IngestedRecordModel.natural_key == natural_key)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()


ingested_record_crud = IngestedRecordCRUD()
