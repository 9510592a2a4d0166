"""FastAPI application factory for the analysis orchestrator service."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable

from fastapi import FastAPI

from ram_orchestrator.config import AppSettings
from ram_orchestrator.db import DatabaseHealthPort
from ram_orchestrator.jobs import JobTaskSupervisor, ResultsJobPort

from .routers import api_create_health_router, api_create_results_router


def create_api_application(
    settings: AppSettings,
    db_health_service: DatabaseHealthPort,
    results_service: ResultsJobPort,
    supervisor: JobTaskSupervisor | None = None,
    on_shutdown: Callable[[], Awaitable[None]] | None = None,
) -> FastAPI:
    """Create the FastAPI application instance for the service.

    Args:
        settings: Validated application settings used for runtime metadata.
        db_health_service: Database health service used by health endpoints.
        results_service: Admission service for result generation endpoints.
        supervisor: Owner of background jobs, drained on shutdown.
        on_shutdown: Optional coroutine run after the drain, for example engine disposal.

    Returns:
        FastAPI: Framework application instance.
    """

    @asynccontextmanager
    async def api_lifespan(_application: FastAPI) -> AsyncIterator[None]:
        yield
        if supervisor is not None:
            await supervisor.job_shutdown()
        if on_shutdown is not None:
            await on_shutdown()

    application = FastAPI(title="RAM Analysis Orchestrator", lifespan=api_lifespan)

    @application.get("/", tags=["foundation"])
    def foundation_index() -> dict[str, str]:
        return {
            "service": "ram-analysis-orchestrator",
            "status": "ready",
            "environment": settings.environment_name,
        }

    application.include_router(api_create_health_router(db_health_service=db_health_service))
    application.include_router(api_create_results_router(results_service=results_service))
    return application
