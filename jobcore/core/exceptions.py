"""
Exception hierarchy for jobcore.

Provides layered exception structure for domain-specific errors.
All exceptions include context for observability and debugging.

Dependencies: None (pure domain layer)
System role: Centralized error taxonomy shared by ledger, executor and ingestion
"""

from typing import Any


class JobCoreError(Exception):
    """Base exception for all jobcore errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize base exception with message and optional context.

        Args:
            message: Human-readable error message
            details: Optional dictionary of additional context for debugging
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation including details."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class InvalidPayload(JobCoreError):
    """Raised when a submission fails schema or semantic validation."""

    def __init__(
        self,
        message: str,
        errors: list[dict[str, Any]] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize invalid payload error.

        Args:
            message: Error message
            errors: Field-level validation errors
            details: Additional context
        """
        self.errors = errors or []
        super().__init__(message, details)


class InvalidTransition(JobCoreError):
    """Raised when a status change is not an allowed lifecycle edge."""

    def __init__(
        self,
        job_id: str,
        current: str | None,
        target: str,
        reason: str | None = None,
    ) -> None:
        details = {"job_id": job_id, "current": current, "target": target}
        message = f"Invalid transition {current} -> {target} for job {job_id}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, details)


class JobNotFound(JobCoreError):
    """Raised when a job cannot be found."""

    def __init__(self, job_id: str, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["job_id"] = job_id
        super().__init__(f"Job not found: {job_id}", details)


NotFound = JobNotFound


class Forbidden(JobCoreError):
    """Raised when a caller reads a job it does not own."""

    def __init__(self, job_id: str, caller_id: str) -> None:
        super().__init__(
            f"Caller is not allowed to read job {job_id}",
            {"job_id": job_id, "caller_id": caller_id},
        )


class StorageUnavailable(JobCoreError):
    """Raised when a durable store, object store or channel rejects an operation."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize storage error.

        Args:
            message: Error message
            operation: Operation that failed (create, transition, send, get_object, ...)
            details: Additional context
        """
        details = details or {}
        if operation:
            details["operation"] = operation
        super().__init__(message, details)


class ExecutionFailed(JobCoreError):
    """Raised by the data engine when a query cannot be executed."""


class ValidationFailed(JobCoreError):
    """Raised when one ingested item is malformed. Isolated to that item."""

    def __init__(
        self,
        message: str,
        location: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if location:
            details["location"] = location
        super().__init__(message, details)


class RedeliveryExhausted(JobCoreError):
    """Raised or recorded when an envelope is diverted to dead-letter storage."""

    def __init__(self, envelope_id: str, delivery_count: int) -> None:
        super().__init__(
            f"Envelope {envelope_id} exhausted redelivery after {delivery_count} deliveries",
            {"envelope_id": envelope_id, "delivery_count": delivery_count},
        )


class EventParseError(JobCoreError):
    """Raised when an arrival notification cannot be turned into a descriptor."""
