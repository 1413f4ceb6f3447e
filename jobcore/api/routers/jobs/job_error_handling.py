"""
Job error handling utilities.

Provides a decorator for consistent error handling across job API
endpoints, mapping the domain error taxonomy onto HTTP status codes.
"""

import functools
import logging
from typing import Any, Callable, TypeVar

from fastapi import HTTPException, status

from jobcore.core.exceptions import (
    Forbidden,
    InvalidPayload,
    InvalidTransition,
    JobNotFound,
    StorageUnavailable,
)

logger = logging.getLogger(__name__)

# Type for the decorated function
F = TypeVar("F", bound=Callable[..., Any])


def handle_job_errors(func: F) -> F:
    """
    Decorator to transform job errors into HTTPExceptions.

    Centralizes:
    - Logging of errors with context
    - Mapping domain exceptions to HTTP status codes
    - Keeping internal details out of responses
    """

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return await func(*args, **kwargs)

        except InvalidPayload as e:
            logger.warning("Invalid job submission", extra={"error": e.message})
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail={"message": e.message, "errors": e.errors},
            )

        except JobNotFound as e:
            logger.warning("Job not found", extra={"job_id": e.details.get("job_id")})
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)

        except Forbidden as e:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)

        except InvalidTransition as e:
            logger.warning("Job transition conflict", extra=e.details)
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)

        except StorageUnavailable as e:
            logger.error(
                "Storage unavailable during job operation",
                extra={"operation": e.details.get("operation"), "error": e.message},
            )
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Storage temporarily unavailable, retry later",
            )

        except HTTPException:
            raise

        except Exception as e:
            logger.exception("Unexpected failure in job operation", extra={"error_type": type(e).__name__})
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="An internal error occurred",
            )

    return wrapper  # type: ignore
