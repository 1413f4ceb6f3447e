"""
Job routes.
"""

from .jobs_router import router

__all__ = ["router"]
