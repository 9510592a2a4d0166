"""Database service for operation lifecycle persistence and single-flight enforcement."""

from __future__ import annotations

import json
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from ram_orchestrator.domain import (
    OPERATION_STATUS_RUNNING,
    OPERATION_TERMINAL_STATUSES,
    OperationAlreadyRunningError,
)

from .interfaces import OperationLogRecord, OperationRecord, OperationRepositoryPort

_OPERATION_COLUMNS = "id, name, project_id, scenario_id, status, created_at, updated_at"
_OPERATION_LOG_COLUMNS = "id, operation_id, code, data, created_at"


class SQLAlchemyOperationService(OperationRepositoryPort):
    """SQLAlchemy-backed operation service.

    The single running operation per (name, project, scenario) identity is
    enforced by the `uq_operations_running_identity` partial unique index, so
    the existence check and the insert are one atomic statement.
    """

    def __init__(self, engine: AsyncEngine):
        """Initialize operation persistence service.

        Args:
            engine: SQLAlchemy async engine used for all persistence operations.

        Raises:
            ValueError: Raised when engine is None.
        """

        if engine is None:
            raise ValueError("engine must not be None")
        self._engine = engine

    async def db_operation_create_started(self, name: str, project_id: int, scenario_id: int) -> OperationRecord:
        """Create a running operation while enforcing a single running one per identity.

        Args:
            name: Operation type name.
            project_id: Project identifier.
            scenario_id: Scenario identifier.

        Returns:
            OperationRecord: Newly created running operation.

        Raises:
            OperationAlreadyRunningError: Raised when a running operation already exists.
            ValueError: Raised when name is blank.
            RuntimeError: Raised when persistence fails.
        """

        normalized_name = self._validate_non_empty_text(name, "name")

        try:
            async with self._engine.begin() as connection:
                result = await connection.execute(
                    text(
                        "INSERT INTO operations (name, project_id, scenario_id, status, created_at, updated_at) "
                        "VALUES (:name, :project_id, :scenario_id, :status, now(), now()) "
                        f"RETURNING {_OPERATION_COLUMNS}"
                    ),
                    {
                        "name": normalized_name,
                        "project_id": project_id,
                        "scenario_id": scenario_id,
                        "status": OPERATION_STATUS_RUNNING,
                    },
                )
                return self._map_operation_record(result.mappings().one())
        except IntegrityError as error:
            raise OperationAlreadyRunningError(
                f"operation {normalized_name} already running for p{project_id} s{scenario_id}"
            ) from error
        except SQLAlchemyError as error:
            raise RuntimeError("failed to create running operation") from error

    async def db_operation_get_latest(self, name: str, project_id: int, scenario_id: int) -> OperationRecord | None:
        """Fetch the most recent operation for one identity.

        Args:
            name: Operation type name.
            project_id: Project identifier.
            scenario_id: Scenario identifier.

        Returns:
            OperationRecord | None: Latest matching operation or None.

        Raises:
            RuntimeError: Raised when database read fails.
        """

        try:
            async with self._engine.connect() as connection:
                result = await connection.execute(
                    text(
                        f"SELECT {_OPERATION_COLUMNS} "
                        "FROM operations "
                        "WHERE name = :name AND project_id = :project_id AND scenario_id = :scenario_id "
                        "ORDER BY id DESC "
                        "LIMIT 1"
                    ),
                    {"name": name, "project_id": project_id, "scenario_id": scenario_id},
                )
                row = result.mappings().first()
                if row is None:
                    return None
                return self._map_operation_record(row)
        except SQLAlchemyError as error:
            raise RuntimeError("failed to fetch latest operation") from error

    async def db_operation_get_by_id(self, operation_id: int) -> OperationRecord | None:
        """Fetch one operation by id.

        Args:
            operation_id: Operation identifier.

        Returns:
            OperationRecord | None: Matching operation or None.

        Raises:
            RuntimeError: Raised when database read fails.
        """

        try:
            async with self._engine.connect() as connection:
                result = await connection.execute(
                    text(f"SELECT {_OPERATION_COLUMNS} FROM operations WHERE id = :operation_id"),
                    {"operation_id": operation_id},
                )
                row = result.mappings().first()
                if row is None:
                    return None
                return self._map_operation_record(row)
        except SQLAlchemyError as error:
            raise RuntimeError("failed to fetch operation by id") from error

    async def db_operation_append_log(self, operation_id: int, event: str, data: dict[str, Any]) -> OperationLogRecord:
        """Append one log entry and touch the operation update timestamp.

        Args:
            operation_id: Operation identifier.
            event: Event code.
            data: Structured event data.

        Returns:
            OperationLogRecord: Inserted log entry.

        Raises:
            ValueError: Raised when event is blank.
            RuntimeError: Raised when persistence fails.
        """

        normalized_event = self._validate_non_empty_text(event, "event")

        try:
            async with self._engine.begin() as connection:
                log_row = await self._db_insert_log(
                    connection=connection,
                    operation_id=operation_id,
                    event=normalized_event,
                    data=data,
                )
                await connection.execute(
                    text("UPDATE operations SET updated_at = now() WHERE id = :operation_id"),
                    {"operation_id": operation_id},
                )
                return log_row
        except SQLAlchemyError as error:
            raise RuntimeError("failed to append operation log") from error

    async def db_operation_finish(
        self,
        operation_id: int,
        status: str,
        event: str,
        data: dict[str, Any],
    ) -> OperationRecord | None:
        """Move one running operation to a terminal status with a closing log entry.

        Args:
            operation_id: Operation identifier.
            status: Terminal status (`completed` or `error`).
            event: Closing log event code.
            data: Closing log event data.

        Returns:
            OperationRecord | None: Finished operation, or None when it was not running.

        Raises:
            ValueError: Raised when status is not terminal.
            RuntimeError: Raised when persistence fails.
        """

        if status not in OPERATION_TERMINAL_STATUSES:
            raise ValueError("status must be one of: completed, error")

        try:
            async with self._engine.begin() as connection:
                result = await connection.execute(
                    text(
                        "UPDATE operations SET status = :status, updated_at = now() "
                        "WHERE id = :operation_id AND status = :running_status "
                        f"RETURNING {_OPERATION_COLUMNS}"
                    ),
                    {
                        "status": status,
                        "operation_id": operation_id,
                        "running_status": OPERATION_STATUS_RUNNING,
                    },
                )
                row = result.mappings().first()
                if row is None:
                    return None

                await self._db_insert_log(connection=connection, operation_id=operation_id, event=event, data=data)
                return self._map_operation_record(row)
        except SQLAlchemyError as error:
            raise RuntimeError("failed to finish operation") from error

    async def db_operation_list_logs(self, operation_id: int) -> list[OperationLogRecord]:
        """List log entries of one operation in append order.

        Args:
            operation_id: Operation identifier.

        Returns:
            list[OperationLogRecord]: Ordered log entries.

        Raises:
            RuntimeError: Raised when database read fails.
        """

        try:
            async with self._engine.connect() as connection:
                result = await connection.execute(
                    text(
                        f"SELECT {_OPERATION_LOG_COLUMNS} "
                        "FROM operations_logs "
                        "WHERE operation_id = :operation_id "
                        "ORDER BY id ASC"
                    ),
                    {"operation_id": operation_id},
                )
                return [self._map_operation_log_record(row) for row in result.mappings().all()]
        except SQLAlchemyError as error:
            raise RuntimeError("failed to list operation logs") from error

    async def _db_insert_log(self, connection, operation_id: int, event: str, data: dict[str, Any]) -> OperationLogRecord:
        result = await connection.execute(
            text(
                "INSERT INTO operations_logs (operation_id, code, data, created_at) "
                "VALUES (:operation_id, :code, CAST(:data AS jsonb), now()) "
                f"RETURNING {_OPERATION_LOG_COLUMNS}"
            ),
            {"operation_id": operation_id, "code": event, "data": json.dumps(data, default=str)},
        )
        return self._map_operation_log_record(result.mappings().one())

    def _map_operation_record(self, row: Any) -> OperationRecord:
        """Map SQLAlchemy row mapping to typed operation record.

        Args:
            row: SQLAlchemy mapping row.

        Returns:
            OperationRecord: Typed operation record.
        """

        return OperationRecord(
            operation_id=int(row["id"]),
            name=row["name"],
            project_id=int(row["project_id"]),
            scenario_id=int(row["scenario_id"]),
            status=row["status"],
            created_at_utc=row["created_at"],
            updated_at_utc=row["updated_at"],
        )

    def _map_operation_log_record(self, row: Any) -> OperationLogRecord:
        """Map SQLAlchemy row mapping to typed operation log record.

        Raises:
            TypeError: Raised when stored data is not a JSON object.
        """

        data_value = row["data"]
        if data_value is None:
            data_value = {}
        if not isinstance(data_value, dict):
            raise TypeError("operations_logs.data must be a JSON object when present")

        return OperationLogRecord(
            operation_log_id=int(row["id"]),
            operation_id=int(row["operation_id"]),
            event=row["code"],
            data=data_value,
            created_at_utc=row["created_at"],
        )

    def _validate_non_empty_text(self, value: str, field_name: str) -> str:
        stripped_value = value.strip()
        if not stripped_value:
            raise ValueError(f"{field_name} must not be blank")
        return stripped_value
