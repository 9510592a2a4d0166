"""Project-native typed exceptions for orchestration failures."""

from __future__ import annotations


class OrchestratorError(Exception):
    """Base exception for orchestration-level failures."""


class NotFoundError(OrchestratorError, LookupError):
    """Raised when an operation, project or scenario record is absent."""


class OperationNotFoundError(NotFoundError):
    """Raised when no operation record exists for an identity."""


class ProjectNotFoundError(NotFoundError):
    """Raised when the parent project does not exist."""


class ScenarioNotFoundError(NotFoundError):
    """Raised when the scenario does not exist within its project."""


class DataConflictError(OrchestratorError):
    """Raised when a request conflicts with current job or record state."""


class OperationAlreadyRunningError(DataConflictError):
    """Raised when an unfinished operation already exists for an identity."""


class OperationStateError(OrchestratorError, RuntimeError):
    """Raised on an illegal operation lifecycle transition such as a double finish."""


class ConfigurationError(OrchestratorError, ValueError):
    """Raised when a configured backend or command is unsupported."""


class ProcessFailureError(OrchestratorError, RuntimeError):
    """Raised when a spawned process exits with a nonzero code.

    Attributes:
        exit_code: Process exit code.
        stderr: Captured standard error output.
    """

    def __init__(self, message: str, exit_code: int | None = None, stderr: str = ""):
        super().__init__(message)
        self.exit_code = exit_code
        self.stderr = stderr


class ServiceError(OrchestratorError, RuntimeError):
    """Raised when a sub-stage service signals failure on completion.

    Attributes:
        service_name: Name of the failing service.
    """

    def __init__(self, message: str, service_name: str):
        super().__init__(message)
        self.service_name = service_name


class JobAbortedError(OrchestratorError):
    """Raised inside a job when cancellation was requested before a stage started."""
