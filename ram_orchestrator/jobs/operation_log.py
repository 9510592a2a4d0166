"""Operation lifecycle state machine over the operation repository."""

from __future__ import annotations

from typing import Any

from ram_orchestrator.db import OperationRecord, OperationRepositoryPort
from ram_orchestrator.domain import (
    OPERATION_STATUS_NOT_STARTED,
    OPERATION_STATUS_RUNNING,
    OPERATION_TERMINAL_STATUSES,
    OperationNotFoundError,
    OperationStateError,
    domain_build_log_entry,
)


class OperationLog:
    """Handle on one persisted operation.

    States move `not-started -> running -> completed | error`. A handle is
    bound to a record by `operation_start` or `operation_load_by_data`, and
    `operation_finish` may be called once per operation. A second call is a
    caller bug and raises `OperationStateError`; callers guard with
    `operation_is_completed()` after `operation_refresh()`.
    """

    def __init__(self, repository: OperationRepositoryPort):
        """Initialize an unbound operation handle.

        Args:
            repository: DB-layer operation persistence service.

        Raises:
            ValueError: Raised when repository is None.
        """

        if repository is None:
            raise ValueError("repository must not be None")
        self._repository = repository
        self._record: OperationRecord | None = None

    @property
    def record(self) -> OperationRecord | None:
        return self._record

    @property
    def status(self) -> str:
        if self._record is None:
            return OPERATION_STATUS_NOT_STARTED
        return self._record.status

    def operation_id(self) -> int:
        """Return the bound operation identifier.

        Raises:
            OperationStateError: Raised when the handle is not bound to a record.
        """

        return self._operation_require_record().operation_id

    async def operation_start(self, name: str, project_id: int, scenario_id: int) -> int:
        """Persist a new running operation and bind this handle to it.

        Args:
            name: Operation type name.
            project_id: Project identifier.
            scenario_id: Scenario identifier.

        Returns:
            int: New operation identifier.

        Raises:
            OperationAlreadyRunningError: Raised when an unfinished operation exists for the identity.
            OperationStateError: Raised when this handle is already bound.
        """

        if self._record is not None:
            raise OperationStateError("operation handle is already bound")
        self._record = await self._repository.db_operation_create_started(
            name=name,
            project_id=project_id,
            scenario_id=scenario_id,
        )
        return self._record.operation_id

    async def operation_load_by_data(self, name: str, project_id: int, scenario_id: int) -> OperationRecord:
        """Bind this handle to the most recent operation for an identity.

        Args:
            name: Operation type name.
            project_id: Project identifier.
            scenario_id: Scenario identifier.

        Returns:
            OperationRecord: Loaded record.

        Raises:
            OperationNotFoundError: Raised when no operation exists for the identity.
        """

        record = await self._repository.db_operation_get_latest(
            name=name,
            project_id=project_id,
            scenario_id=scenario_id,
        )
        if record is None:
            raise OperationNotFoundError(f"Operation {name} does not exist for p{project_id} s{scenario_id}")
        self._record = record
        return record

    async def operation_refresh(self) -> OperationRecord:
        """Reload the bound record so status checks see concurrent transitions.

        Raises:
            OperationStateError: Raised when the handle is not bound.
            OperationNotFoundError: Raised when the record was deleted.
        """

        operation_id = self.operation_id()
        record = await self._repository.db_operation_get_by_id(operation_id=operation_id)
        if record is None:
            raise OperationNotFoundError(f"Operation {operation_id} does not exist")
        self._record = record
        return record

    def operation_is_started(self) -> bool:
        return self.status == OPERATION_STATUS_RUNNING

    def operation_is_completed(self) -> bool:
        return self.status in OPERATION_TERMINAL_STATUSES

    async def operation_log(self, event: str, data: dict[str, Any] | None = None) -> None:
        """Append one log entry to the bound operation.

        Args:
            event: Event code.
            data: Optional structured data.

        Raises:
            OperationStateError: Raised when the handle is not bound.
            ValueError: Raised when event is blank.
        """

        entry = domain_build_log_entry(event=event, data=data)
        await self._repository.db_operation_append_log(
            operation_id=self.operation_id(),
            event=str(entry["event"]),
            data=dict(entry["data"]),
        )

    async def operation_finish(self, status: str, data: dict[str, Any] | None = None) -> None:
        """Move the bound operation to a terminal status with a closing log entry.

        Args:
            status: Terminal status (`completed` or `error`).
            data: Optional closing log data.

        Raises:
            ValueError: Raised when status is not terminal.
            OperationStateError: Raised when the operation is already finished.
        """

        if status not in OPERATION_TERMINAL_STATUSES:
            raise ValueError("status must be one of: completed, error")
        record = self._operation_require_record()
        if self.operation_is_completed():
            raise OperationStateError(f"operation {record.operation_id} already finished with status {record.status}")

        entry = domain_build_log_entry(event=status, data=data)
        finished_record = await self._repository.db_operation_finish(
            operation_id=record.operation_id,
            status=status,
            event=str(entry["event"]),
            data=dict(entry["data"]),
        )
        if finished_record is None:
            await self.operation_refresh()
            raise OperationStateError(f"operation {record.operation_id} already finished with status {self.status}")
        self._record = finished_record

    def _operation_require_record(self) -> OperationRecord:
        if self._record is None:
            raise OperationStateError("operation handle is not bound to a record")
        return self._record
