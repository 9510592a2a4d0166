"""Typed interfaces for database-layer services.

All SQL access must remain in the db package and its submodules.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, Sequence

from ram_orchestrator.domain import HealthStatus


class DatabaseHealthPort(Protocol):
    """Port definition for database connectivity verification."""

    def db_connection_label(self) -> str:
        """Return a stable label for the active database connection target.

        Returns:
            str: Database target label for diagnostics.
        """

    async def db_check_health(self) -> HealthStatus:
        """Check database connectivity and return deterministic health payload.

        Returns:
            HealthStatus: Database health status payload.

        Raises:
            ConnectionError: Raised when database cannot be reached.
        """


@dataclass(frozen=True)
class OperationRecord:
    """Persisted lifecycle state for one named operation.

    Attributes:
        operation_id: Operation identifier.
        name: Operation type name, for example `generate-analysis`.
        project_id: Project identifier.
        scenario_id: Scenario identifier.
        status: Lifecycle status (`running`, `completed`, `error`).
        created_at_utc: Creation timestamp in UTC.
        updated_at_utc: Last status change timestamp in UTC.
    """

    operation_id: int
    name: str
    project_id: int
    scenario_id: int
    status: str
    created_at_utc: datetime
    updated_at_utc: datetime


@dataclass(frozen=True)
class OperationLogRecord:
    """One timestamped operation log entry.

    Attributes:
        operation_log_id: Log entry identifier, increasing in append order.
        operation_id: Owning operation identifier.
        event: Event code.
        data: Structured event data.
        created_at_utc: Append timestamp in UTC.
    """

    operation_log_id: int
    operation_id: int
    event: str
    data: dict[str, Any] = field(default_factory=dict)
    created_at_utc: datetime | None = None


@dataclass(frozen=True)
class ProjectRecord:
    """Project row subset needed for admission checks."""

    project_id: int
    name: str
    status: str


@dataclass(frozen=True)
class ScenarioRecord:
    """Scenario row subset needed for admission checks."""

    scenario_id: int
    project_id: int
    name: str


@dataclass(frozen=True)
class ScenarioFileRecord:
    """Stored scenario file metadata referencing one object storage entry.

    Attributes:
        file_id: File record identifier.
        project_id: Project identifier.
        scenario_id: Scenario identifier.
        name: File display name.
        file_type: File kind, for example `results-csv` or `road-network`.
        path: Object storage key.
    """

    file_id: int
    project_id: int
    scenario_id: int
    name: str
    file_type: str
    path: str


class OperationRepositoryPort(Protocol):
    """Port definition for operation lifecycle persistence."""

    async def db_operation_create_started(self, name: str, project_id: int, scenario_id: int) -> OperationRecord:
        """Atomically create a running operation unless one is already running.

        Raises:
            OperationAlreadyRunningError: Raised when a running operation exists for the identity.
        """

    async def db_operation_get_latest(self, name: str, project_id: int, scenario_id: int) -> OperationRecord | None:
        """Return the most recent operation for the identity, if any."""

    async def db_operation_get_by_id(self, operation_id: int) -> OperationRecord | None:
        """Return one operation by identifier, if any."""

    async def db_operation_append_log(self, operation_id: int, event: str, data: dict[str, Any]) -> OperationLogRecord:
        """Append one log entry to a running or finished operation."""

    async def db_operation_finish(
        self,
        operation_id: int,
        status: str,
        event: str,
        data: dict[str, Any],
    ) -> OperationRecord | None:
        """Set terminal status and append the closing log entry.

        Returns:
            OperationRecord | None: Updated record, or None when the operation was not running.
        """

    async def db_operation_list_logs(self, operation_id: int) -> list[OperationLogRecord]:
        """Return log entries in append order."""


class ScenarioRepositoryPort(Protocol):
    """Port definition for project and scenario collaborator data."""

    async def db_project_get(self, project_id: int) -> ProjectRecord | None:
        """Return one project, if any."""

    async def db_scenario_get(self, project_id: int, scenario_id: int) -> ScenarioRecord | None:
        """Return one scenario within its project, if any."""

    async def db_scenario_setting_get(self, scenario_id: int, key: str) -> str | None:
        """Return one scenario setting value, if any."""

    async def db_scenario_settings_get_many(self, scenario_id: int, keys: Sequence[str]) -> dict[str, str]:
        """Return the stored settings among keys, keyed by setting name."""

    async def db_scenario_files_list(
        self,
        project_id: int,
        scenario_id: int,
        file_types: Sequence[str],
    ) -> list[ScenarioFileRecord]:
        """Return scenario file records of the given kinds."""

    async def db_scenario_file_get_by_type(self, scenario_id: int, file_type: str) -> ScenarioFileRecord | None:
        """Return the first scenario file record of one kind, if any."""

    async def db_scenario_files_delete(self, file_ids: Sequence[int]) -> int:
        """Delete scenario file records by id and return the deleted count."""

    async def db_results_delete(self, project_id: int, scenario_id: int) -> int:
        """Delete stored result rows for a scenario and return the deleted count."""
