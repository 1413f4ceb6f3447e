"""
Dependency injection container.

Factory functions for FastAPI dependencies.

Dependencies: jobcore.application, jobcore.boundary, jobcore.core
System role: DI container for service injection
"""

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from jobcore.application.components import get_component_cache
from jobcore.application.services.job_service import JobService
from jobcore.boundary.db import get_async_db
from jobcore.core.dispatcher import QueryDispatcher
from jobcore.core.job_ledger import JobLedger
from jobcore.models.job import CallerIdentity


def get_caller(
    x_caller_id: str | None = Header(default=None),
    x_caller_roles: str = Header(default=""),
) -> CallerIdentity:
    """
    Caller identity asserted by the upstream identity provider.

    Args:
        x_caller_id: Verified subject
        x_caller_roles: Comma-separated roles

    Returns:
        CallerIdentity: Caller for ownership checks

    Raises:
        HTTPException(401): No identity supplied
    """
    if not x_caller_id or not x_caller_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing caller identity",
        )
    roles = frozenset(role.strip() for role in x_caller_roles.split(",") if role.strip())
    return CallerIdentity(subject=x_caller_id.strip(), roles=roles)


def get_job_ledger(db: AsyncSession = Depends(get_async_db)) -> JobLedger:
    """
    Get job ledger instance.

    Args:
        db: Async database session (injected via Depends)

    Returns:
        JobLedger: Ledger bound to the request's session
    """
    return JobLedger(db)


def get_query_dispatcher(ledger: JobLedger = Depends(get_job_ledger)) -> QueryDispatcher:
    """Get query dispatcher wired to the configured task publisher."""
    return QueryDispatcher(ledger, get_component_cache().task_publisher)


def get_job_service(ledger: JobLedger = Depends(get_job_ledger)) -> JobService:
    """Get job service with the cached result store."""
    return JobService(ledger, get_component_cache().result_store)
