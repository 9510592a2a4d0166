"""Database service for project, scenario, settings and result file records."""

from __future__ import annotations

from typing import Any, Sequence

from sqlalchemy import bindparam, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from .interfaces import ProjectRecord, ScenarioFileRecord, ScenarioRecord, ScenarioRepositoryPort

_SCENARIO_FILE_COLUMNS = "id, project_id, scenario_id, name, type, path"


class SQLAlchemyScenarioService(ScenarioRepositoryPort):
    """SQLAlchemy-backed read/delete access to scenario collaborator tables."""

    def __init__(self, engine: AsyncEngine):
        """Initialize scenario persistence service.

        Args:
            engine: SQLAlchemy async engine used for all persistence operations.

        Raises:
            ValueError: Raised when engine is None.
        """

        if engine is None:
            raise ValueError("engine must not be None")
        self._engine = engine

    async def db_project_get(self, project_id: int) -> ProjectRecord | None:
        """Fetch one project by id.

        Args:
            project_id: Project identifier.

        Returns:
            ProjectRecord | None: Matching project or None.

        Raises:
            RuntimeError: Raised when database read fails.
        """

        row = await self._db_fetch_first(
            "SELECT id, name, status FROM projects WHERE id = :project_id",
            {"project_id": project_id},
            "failed to fetch project",
        )
        if row is None:
            return None
        return ProjectRecord(project_id=int(row["id"]), name=row["name"], status=row["status"])

    async def db_scenario_get(self, project_id: int, scenario_id: int) -> ScenarioRecord | None:
        """Fetch one scenario within its project.

        Args:
            project_id: Project identifier.
            scenario_id: Scenario identifier.

        Returns:
            ScenarioRecord | None: Matching scenario or None.

        Raises:
            RuntimeError: Raised when database read fails.
        """

        row = await self._db_fetch_first(
            "SELECT id, project_id, name FROM scenarios WHERE id = :scenario_id AND project_id = :project_id",
            {"project_id": project_id, "scenario_id": scenario_id},
            "failed to fetch scenario",
        )
        if row is None:
            return None
        return ScenarioRecord(scenario_id=int(row["id"]), project_id=int(row["project_id"]), name=row["name"])

    async def db_scenario_setting_get(self, scenario_id: int, key: str) -> str | None:
        """Fetch one scenario setting value.

        Args:
            scenario_id: Scenario identifier.
            key: Setting key.

        Returns:
            str | None: Stored value or None when the setting is absent.

        Raises:
            RuntimeError: Raised when database read fails.
        """

        row = await self._db_fetch_first(
            "SELECT value FROM scenarios_settings WHERE scenario_id = :scenario_id AND key = :key",
            {"scenario_id": scenario_id, "key": key},
            "failed to fetch scenario setting",
        )
        if row is None:
            return None
        return row["value"]

    async def db_scenario_settings_get_many(self, scenario_id: int, keys: Sequence[str]) -> dict[str, str]:
        """Fetch several scenario settings keyed by name.

        Args:
            scenario_id: Scenario identifier.
            keys: Setting keys to read.

        Returns:
            dict[str, str]: Stored values for the keys present.

        Raises:
            RuntimeError: Raised when database read fails.
        """

        if not keys:
            return {}

        statement = text(
            "SELECT key, value FROM scenarios_settings "
            "WHERE scenario_id = :scenario_id AND key IN :keys "
            "ORDER BY key"
        ).bindparams(bindparam("keys", expanding=True))

        try:
            async with self._engine.connect() as connection:
                result = await connection.execute(statement, {"scenario_id": scenario_id, "keys": list(keys)})
                return {row["key"]: row["value"] for row in result.mappings().all()}
        except SQLAlchemyError as error:
            raise RuntimeError("failed to fetch scenario settings") from error

    async def db_scenario_files_list(
        self,
        project_id: int,
        scenario_id: int,
        file_types: Sequence[str],
    ) -> list[ScenarioFileRecord]:
        """List scenario file records of the given kinds.

        Args:
            project_id: Project identifier.
            scenario_id: Scenario identifier.
            file_types: File kinds to include.

        Returns:
            list[ScenarioFileRecord]: Matching file records ordered by id.

        Raises:
            RuntimeError: Raised when database read fails.
        """

        if not file_types:
            return []

        statement = text(
            f"SELECT {_SCENARIO_FILE_COLUMNS} FROM scenarios_files "
            "WHERE project_id = :project_id AND scenario_id = :scenario_id AND type IN :file_types "
            "ORDER BY id"
        ).bindparams(bindparam("file_types", expanding=True))

        try:
            async with self._engine.connect() as connection:
                result = await connection.execute(
                    statement,
                    {"project_id": project_id, "scenario_id": scenario_id, "file_types": list(file_types)},
                )
                return [self._map_scenario_file_record(row) for row in result.mappings().all()]
        except SQLAlchemyError as error:
            raise RuntimeError("failed to list scenario files") from error

    async def db_scenario_file_get_by_type(self, scenario_id: int, file_type: str) -> ScenarioFileRecord | None:
        """Fetch the first scenario file record of one kind.

        Raises:
            RuntimeError: Raised when database read fails.
        """

        row = await self._db_fetch_first(
            f"SELECT {_SCENARIO_FILE_COLUMNS} FROM scenarios_files "
            "WHERE scenario_id = :scenario_id AND type = :file_type "
            "ORDER BY id LIMIT 1",
            {"scenario_id": scenario_id, "file_type": file_type},
            "failed to fetch scenario file",
        )
        if row is None:
            return None
        return self._map_scenario_file_record(row)

    async def db_scenario_files_delete(self, file_ids: Sequence[int]) -> int:
        """Delete scenario file records by id.

        Args:
            file_ids: File record identifiers.

        Returns:
            int: Number of deleted rows.

        Raises:
            RuntimeError: Raised when persistence fails.
        """

        if not file_ids:
            return 0

        statement = text("DELETE FROM scenarios_files WHERE id IN :file_ids").bindparams(
            bindparam("file_ids", expanding=True)
        )
        try:
            async with self._engine.begin() as connection:
                result = await connection.execute(statement, {"file_ids": list(file_ids)})
                return int(result.rowcount or 0)
        except SQLAlchemyError as error:
            raise RuntimeError("failed to delete scenario files") from error

    async def db_results_delete(self, project_id: int, scenario_id: int) -> int:
        """Delete stored result rows of one scenario.

        Raises:
            RuntimeError: Raised when persistence fails.
        """

        try:
            async with self._engine.begin() as connection:
                result = await connection.execute(
                    text("DELETE FROM results WHERE project_id = :project_id AND scenario_id = :scenario_id"),
                    {"project_id": project_id, "scenario_id": scenario_id},
                )
                return int(result.rowcount or 0)
        except SQLAlchemyError as error:
            raise RuntimeError("failed to delete scenario results") from error

    async def _db_fetch_first(self, query: str, parameters: dict[str, Any], error_message: str) -> Any:
        try:
            async with self._engine.connect() as connection:
                result = await connection.execute(text(query), parameters)
                return result.mappings().first()
        except SQLAlchemyError as error:
            raise RuntimeError(error_message) from error

    def _map_scenario_file_record(self, row: Any) -> ScenarioFileRecord:
        return ScenarioFileRecord(
            file_id=int(row["id"]),
            project_id=int(row["project_id"]),
            scenario_id=int(row["scenario_id"]),
            name=row["name"],
            file_type=row["type"],
            path=row["path"],
        )
