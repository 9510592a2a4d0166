"""Admission control and abort handling for result generation requests."""

from __future__ import annotations

import asyncio
import logging

from ram_orchestrator.adapters import ObjectStoragePort
from ram_orchestrator.db import OperationRepositoryPort, ScenarioRepositoryPort
from ram_orchestrator.domain import (
    GENERATE_ANALYSIS_OPERATION,
    OPERATION_STATUS_ERROR,
    RESULT_FILE_TYPES,
    SETTING_ADMIN_AREAS,
    DataConflictError,
    JobKey,
    OperationAlreadyRunningError,
    OperationNotFoundError,
    OperationStateError,
    ProjectNotFoundError,
    ScenarioNotFoundError,
    domain_admin_areas_selected,
)

from .interfaces import JobExecutionResult, ResultsJobPort
from .operation_log import OperationLog
from .orchestrator import ResultsGenerationOrchestrator
from .supervisor import JobTaskSupervisor

logger = logging.getLogger(__name__)

PROJECT_STATUS_ACTIVE = "active"


class ResultsAdmissionService(ResultsJobPort):
    """Validates generation requests before handing them to the orchestrator."""

    def __init__(
        self,
        operation_repository: OperationRepositoryPort,
        scenario_repository: ScenarioRepositoryPort,
        storage: ObjectStoragePort,
        orchestrator: ResultsGenerationOrchestrator,
        supervisor: JobTaskSupervisor,
        generation_enabled: bool = True,
    ):
        """Initialize admission dependencies.

        Args:
            operation_repository: DB-layer operation persistence service.
            scenario_repository: DB-layer scenario service.
            storage: Object storage holding result files.
            orchestrator: Generation orchestrator.
            supervisor: Owner of detached generation tasks.
            generation_enabled: When False, requests are validated but no job runs.
        """

        self._operation_repository = operation_repository
        self._scenario_repository = scenario_repository
        self._storage = storage
        self._orchestrator = orchestrator
        self._supervisor = supervisor
        self._generation_enabled = generation_enabled

    async def job_admit_generation(self, project_id: int, scenario_id: int) -> JobExecutionResult:
        """Validate preconditions, clear old results and start generation in the background.

        Args:
            project_id: Project identifier.
            scenario_id: Scenario identifier.

        Returns:
            JobExecutionResult: `started`, or `skipped` when generation is disabled.

        Raises:
            ProjectNotFoundError: Raised when the project does not exist.
            ScenarioNotFoundError: Raised when the scenario does not exist.
            DataConflictError: Raised when generation runs already or preconditions are unmet.
        """

        key = JobKey(project_id=project_id, scenario_id=scenario_id)
        if await self._job_is_running(key):
            raise DataConflictError("Result generation already running")

        await self._job_check_preconditions(key)
        await self._job_delete_results(key)

        if not self._generation_enabled:
            logger.info("%s result generation disabled, not starting", key)
            return JobExecutionResult(job_name=GENERATE_ANALYSIS_OPERATION, status="skipped")

        try:
            operation = await self._orchestrator.job_start_generation(project_id=project_id, scenario_id=scenario_id)
        except OperationAlreadyRunningError as error:
            raise DataConflictError("Result generation already running") from error

        self._supervisor.job_submit(
            self._orchestrator.job_run_generation(operation),
            name=f"{GENERATE_ANALYSIS_OPERATION} {key}",
        )
        logger.info("%s result generation started as operation %s", key, operation.operation_id())
        return JobExecutionResult(
            job_name=GENERATE_ANALYSIS_OPERATION,
            status="started",
            operation_id=operation.operation_id(),
        )

    async def job_abort_generation(self, project_id: int, scenario_id: int) -> JobExecutionResult:
        """Kill the active stage of a running generation and mark it aborted.

        Args:
            project_id: Project identifier.
            scenario_id: Scenario identifier.

        Returns:
            JobExecutionResult: `aborted` with the operation identifier.

        Raises:
            DataConflictError: Raised when no generation is running.
        """

        operation = OperationLog(self._operation_repository)
        try:
            await operation.operation_load_by_data(
                name=GENERATE_ANALYSIS_OPERATION,
                project_id=project_id,
                scenario_id=scenario_id,
            )
        except OperationNotFoundError as error:
            raise DataConflictError("Result generation not running") from error
        if not operation.operation_is_started():
            raise DataConflictError("Result generation not running")

        killed_stage = await self._orchestrator.job_kill_analysis_process(project_id=project_id, scenario_id=scenario_id)
        try:
            await operation.operation_finish(OPERATION_STATUS_ERROR, {"error": "Operation aborted"})
        except OperationStateError as error:
            raise DataConflictError("Result generation not running") from error

        logger.info("p%s s%s result generation aborted at %s", project_id, scenario_id, killed_stage)
        return JobExecutionResult(
            job_name=GENERATE_ANALYSIS_OPERATION,
            status="aborted",
            operation_id=operation.operation_id(),
        )

    async def _job_is_running(self, key: JobKey) -> bool:
        operation = OperationLog(self._operation_repository)
        try:
            await operation.operation_load_by_data(
                name=GENERATE_ANALYSIS_OPERATION,
                project_id=key.project_id,
                scenario_id=key.scenario_id,
            )
        except OperationNotFoundError:
            return False
        return operation.operation_is_started()

    async def _job_check_preconditions(self, key: JobKey) -> None:
        project = await self._scenario_repository.db_project_get(project_id=key.project_id)
        if project is None:
            raise ProjectNotFoundError("Project not found")
        if project.status != PROJECT_STATUS_ACTIVE:
            raise DataConflictError("Project setup not completed")

        scenario = await self._scenario_repository.db_scenario_get(
            project_id=key.project_id,
            scenario_id=key.scenario_id,
        )
        if scenario is None:
            raise ScenarioNotFoundError("Scenario not found")

        admin_areas = await self._scenario_repository.db_scenario_setting_get(
            scenario_id=key.scenario_id,
            key=SETTING_ADMIN_AREAS,
        )
        if not domain_admin_areas_selected(admin_areas):
            raise DataConflictError("No admin areas selected")

    async def _job_delete_results(self, key: JobKey) -> None:
        """Delete result blobs and records of the previous generation.

        Blob removals are best effort; record deletions must succeed.
        """

        files = await self._scenario_repository.db_scenario_files_list(
            project_id=key.project_id,
            scenario_id=key.scenario_id,
            file_types=RESULT_FILE_TYPES,
        )
        blob_outcomes = await asyncio.gather(
            *(self._storage.adapter_remove_file(file_record.path) for file_record in files),
            return_exceptions=True,
        )
        for file_record, outcome in zip(files, blob_outcomes):
            if isinstance(outcome, Exception):
                logger.warning("%s could not remove result file %s: %s", key, file_record.path, outcome)

        if files:
            await self._scenario_repository.db_scenario_files_delete(
                file_ids=[file_record.file_id for file_record in files],
            )
        await self._scenario_repository.db_results_delete(project_id=key.project_id, scenario_id=key.scenario_id)
