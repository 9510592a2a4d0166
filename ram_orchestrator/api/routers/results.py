"""Result generation API router with trigger and abort endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from ram_orchestrator.domain import DataConflictError, NotFoundError, OrchestratorError
from ram_orchestrator.jobs import ResultsJobPort

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "An internal server error occurred"


def api_build_error_response(error: Exception) -> JSONResponse:
    """Map a domain error to a structured error response.

    Args:
        error: Raised error.

    Returns:
        JSONResponse: `{"statusCode", "error", "message"}` body with 404, 409 or 500.
    """

    if isinstance(error, NotFoundError):
        status_code, error_name, message = status.HTTP_404_NOT_FOUND, "Not Found", str(error)
    elif isinstance(error, DataConflictError):
        status_code, error_name, message = status.HTTP_409_CONFLICT, "Conflict", str(error)
    else:
        logger.error("Request failed", exc_info=error)
        status_code, error_name, message = (
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal Server Error",
            INTERNAL_ERROR_MESSAGE,
        )
    payload = {"statusCode": status_code, "error": error_name, "message": message}
    return JSONResponse(content=payload, status_code=status_code)


def api_create_results_router(results_service: ResultsJobPort) -> APIRouter:
    """Create router exposing result generation trigger and abort.

    Args:
        results_service: Job-layer admission service.

    Returns:
        APIRouter: Router exposing `/projects/{project_id}/scenarios/{scenario_id}/generate`.

    Raises:
        ValueError: Raised when results_service is invalid.
    """

    if results_service is None:
        raise ValueError("results_service must not be None")

    router = APIRouter(tags=["results"])

    @router.post("/projects/{project_id}/scenarios/{scenario_id}/generate")
    async def api_results_generate(project_id: int, scenario_id: int) -> JSONResponse:
        """Start result generation; the job keeps running after the response."""

        try:
            await results_service.job_admit_generation(project_id=project_id, scenario_id=scenario_id)
        except (OrchestratorError, RuntimeError) as error:
            return api_build_error_response(error)
        payload = {"statusCode": status.HTTP_200_OK, "message": "Result generation started"}
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    @router.delete("/projects/{project_id}/scenarios/{scenario_id}/generate")
    async def api_results_abort(project_id: int, scenario_id: int) -> JSONResponse:
        """Abort a running result generation."""

        try:
            await results_service.job_abort_generation(project_id=project_id, scenario_id=scenario_id)
        except (OrchestratorError, RuntimeError) as error:
            return api_build_error_response(error)
        payload = {"statusCode": status.HTTP_200_OK, "message": "Result generation aborted"}
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    return router
