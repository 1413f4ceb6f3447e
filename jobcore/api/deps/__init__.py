"""
Dependency injection for the HTTP API.
"""

from jobcore.api.deps.dependencies import (
    get_caller,
    get_job_ledger,
    get_job_service,
    get_query_dispatcher,
)

__all__ = ["get_caller", "get_job_ledger", "get_job_service", "get_query_dispatcher"]
