"""Typed domain models shared across runtime layers."""

from dataclasses import dataclass
from typing import Final

OPERATION_STATUS_NOT_STARTED: Final[str] = "not-started"
OPERATION_STATUS_RUNNING: Final[str] = "running"
OPERATION_STATUS_COMPLETED: Final[str] = "completed"
OPERATION_STATUS_ERROR: Final[str] = "error"
OPERATION_TERMINAL_STATUSES: Final[frozenset[str]] = frozenset({OPERATION_STATUS_COMPLETED, OPERATION_STATUS_ERROR})

GENERATE_ANALYSIS_OPERATION: Final[str] = "generate-analysis"
RESULT_FILE_TYPES: Final[tuple[str, ...]] = ("results-csv", "results-json", "results-geojson")
ROAD_NETWORK_FILE_TYPE: Final[str] = "road-network"


@dataclass(frozen=True)
class HealthStatus:
    """Health response contract used by health-check surfaces.

    Attributes:
        status: Overall status text for service health.
        detail: Additional message suitable for operational diagnostics.
    """

    status: str
    detail: str


@dataclass(frozen=True)
class JobKey:
    """Identity of one (project, scenario) orchestration target.

    Attributes:
        project_id: Project identifier.
        scenario_id: Scenario identifier.
    """

    project_id: int
    scenario_id: int

    def __str__(self) -> str:
        return f"p{self.project_id} s{self.scenario_id}"

    def container_name(self, instance_id: str) -> str:
        """Return the deterministic analysis container name for this key.

        Args:
            instance_id: Deployment instance prefix.

        Returns:
            str: Container name unique per instance and key.
        """

        return f"{instance_id}-analysisp{self.project_id}s{self.scenario_id}"

    def log_prefix(self) -> str:
        """Return the log prefix used for analysis process output."""

        return f"[ANALYSIS P{self.project_id} S{self.scenario_id}]"
