"""API router package for endpoint composition."""

from .health import api_create_health_router
from .results import api_build_error_response, api_create_results_router

__all__ = ["api_create_health_router", "api_build_error_response", "api_create_results_router"]
