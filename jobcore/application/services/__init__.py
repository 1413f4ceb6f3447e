"""
Application services.
"""

from jobcore.application.services.job_service import JobService

__all__ = ["JobService"]
