"""Typed interfaces for job-layer orchestration responsibilities."""

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class JobExecutionResult:
    """Result contract for job admission and execution.

    Attributes:
        job_name: Job identifier.
        status: Outcome (`started`, `skipped`, `aborted`, `success`, `failed`).
        operation_id: Operation identifier when one was started.
    """

    job_name: str
    status: str
    operation_id: int | None = None


class ResultsJobPort(Protocol):
    """Port definition for admitting and aborting result generation jobs."""

    async def job_admit_generation(self, project_id: int, scenario_id: int) -> JobExecutionResult:
        """Validate preconditions, clear old results and start generation in the background.

        Raises:
            NotFoundError: Raised when the project or scenario does not exist.
            DataConflictError: Raised when generation is running or preconditions are unmet.
        """

    async def job_abort_generation(self, project_id: int, scenario_id: int) -> JobExecutionResult:
        """Kill the active stage of a running generation and mark it aborted.

        Raises:
            DataConflictError: Raised when no generation is running.
        """
