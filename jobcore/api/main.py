"""
FastAPI application with assembled routers.

Initializes FastAPI app with all API routers and configures uvicorn server.

Dependencies: fastapi, jobcore.api.routers, uvicorn
System role: API entry point with router assembly and server launch
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from jobcore import __version__
from jobcore.application.components import get_component_cache
from jobcore.configs import get_settings
from jobcore.observability.logger import configure_logging
from jobcore.observability.middleware import CorrelationMiddleware, RequestLoggingMiddleware

from .routers import health_router, jobs_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events.
    """
    logger = logging.getLogger("uvicorn")
    cache = get_component_cache()
    if not cache.settings.channel.task_queue_url:
        # In-process execution: refuse to start without a separate data engine
        cache.query_engine

    yield

    # Let in-process executions finish before the loop closes
    await cache.drain()
    cache.clear()
    logger.info("Component cache cleared")


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application with routers.

    Returns:
        FastAPI: Configured application instance with all routers registered
    """
    configure_logging(get_settings().log_level)

    app = FastAPI(
        title="Job Core API",
        description="Asynchronous query jobs with durable status tracking",
        version=__version__,
        lifespan=lifespan,
    )

    # Add observability middleware
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(CorrelationMiddleware)

    # Register all routers with /api/v1 prefix for versioning
    app.include_router(health_router, prefix="/api/v1")
    app.include_router(jobs_router, prefix="/api/v1")

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "jobcore.api.main:app",
        host="0.0.0.0",
        port=8000,
    )
