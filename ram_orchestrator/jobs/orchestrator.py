"""Results generation orchestrator driving export, tiles and analysis stages."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from ram_orchestrator.adapters import (
    ContainerServicePort,
    ScenarioDatabaseCloserPort,
    ServiceRunnerPort,
    VectorTilesPort,
)
from ram_orchestrator.db import OperationRepositoryPort, ScenarioRepositoryPort
from ram_orchestrator.domain import (
    EXPORT_DECISION_SETTING_KEYS,
    GENERATE_ANALYSIS_OPERATION,
    OPERATION_STATUS_COMPLETED,
    OPERATION_STATUS_ERROR,
    JobKey,
    OperationStateError,
    OrchestratorError,
    ProcessFailureError,
    domain_road_network_needs_export,
)

from .interfaces import JobExecutionResult
from .operation_log import OperationLog
from .process_registry import JobProcessEntry, ProcessRegistry
from .stages import (
    ExportRoadNetworkStage,
    GenerateVectorTilesStage,
    JobStage,
    JobStageContext,
    RunAnalysisContainerStage,
    job_run_stages,
)
from .supervisor import JobTaskSupervisor

logger = logging.getLogger(__name__)

JOB_NAME = GENERATE_ANALYSIS_OPERATION


class ResultsGenerationOrchestrator:
    """Runs one result generation job per (project, scenario) key.

    Orchestration-time failures never propagate to the caller: they are
    written to the operation as its terminal `error` state and logged.
    """

    def __init__(
        self,
        operation_repository: OperationRepositoryPort,
        scenario_repository: ScenarioRepositoryPort,
        registry: ProcessRegistry,
        supervisor: JobTaskSupervisor,
        service_runner: ServiceRunnerPort,
        vector_tiles: VectorTilesPort,
        container_service: ContainerServicePort,
        scenario_database: ScenarioDatabaseCloserPort,
    ):
        """Initialize orchestrator dependencies.

        Args:
            operation_repository: DB-layer operation persistence service.
            scenario_repository: DB-layer scenario read service.
            registry: Process registry shared with the cancellation path.
            supervisor: Owner of fire-and-forget tasks.
            service_runner: Named external service runner.
            vector_tiles: Vector tile generation capability.
            container_service: Analysis container runtime.
            scenario_database: Closer of exclusive scenario database handles.
        """

        self._operation_repository = operation_repository
        self._scenario_repository = scenario_repository
        self._registry = registry
        self._supervisor = supervisor
        self._container_service = container_service
        self._export_stages: tuple[JobStage, ...] = (
            ExportRoadNetworkStage(service_runner=service_runner, scenario_database=scenario_database),
            GenerateVectorTilesStage(scenario_repository=scenario_repository, vector_tiles=vector_tiles),
        )
        self._analysis_stage: JobStage = RunAnalysisContainerStage(container_service=container_service)

    def job_new_operation(self) -> OperationLog:
        return OperationLog(self._operation_repository)

    async def job_start_generation(self, project_id: int, scenario_id: int) -> OperationLog:
        """Persist a running operation and open a fresh registry entry.

        Raises:
            OperationAlreadyRunningError: Raised when generation already runs for the key.
        """

        operation = self.job_new_operation()
        await operation.operation_start(name=JOB_NAME, project_id=project_id, scenario_id=scenario_id)
        self._registry.registry_open(JobKey(project_id=project_id, scenario_id=scenario_id))
        return operation

    async def job_generate_results(self, project_id: int, scenario_id: int) -> JobExecutionResult:
        """Start and run one generation in the current task.

        Args:
            project_id: Project identifier.
            scenario_id: Scenario identifier.

        Returns:
            JobExecutionResult: `success` or `failed`; errors are never raised.
        """

        key = JobKey(project_id=project_id, scenario_id=scenario_id)
        try:
            operation = await self.job_start_generation(project_id=project_id, scenario_id=scenario_id)
        except (OrchestratorError, RuntimeError) as error:
            logger.error("%s generation could not start: %s", key, error)
            return JobExecutionResult(job_name=JOB_NAME, status="failed")
        return await self.job_run_generation(operation)

    async def job_run_generation(self, operation: OperationLog) -> JobExecutionResult:
        """Run the stages of a started generation to a terminal operation state.

        Args:
            operation: Operation bound to a running record.

        Returns:
            JobExecutionResult: `success`, `aborted` or `failed`.
        """

        record = operation.record
        if record is None:
            raise OperationStateError("operation must be started before running generation")
        key = JobKey(project_id=record.project_id, scenario_id=record.scenario_id)
        entry = self._registry.registry_get(key)
        if entry is None:
            entry = self._registry.registry_open(key)
        context = JobStageContext(key=key, operation=operation, entry=entry)

        try:
            await operation.operation_log("start", {"message": "Analysis generation started"})
            stages = await self._job_plan_stages(key)
            # Let the admission response go out before any heavy stage work.
            await asyncio.sleep(0)
            await job_run_stages(stages, context)
        except asyncio.CancelledError:
            await self._job_finish(operation, entry, OPERATION_STATUS_ERROR, {"error": "Operation interrupted"})
            raise
        except (OrchestratorError, RuntimeError, OSError, ValueError) as error:
            logger.error("%s generation failed: %s", key, error)
            await self._job_finish(operation, entry, OPERATION_STATUS_ERROR, self._job_error_data(error))
            status = "aborted" if entry.cancel_requested else "failed"
            return JobExecutionResult(job_name=JOB_NAME, status=status, operation_id=record.operation_id)
        except Exception as error:
            logger.error("%s generation failed unexpectedly: %s", key, error, exc_info=True)
            await self._job_finish(operation, entry, OPERATION_STATUS_ERROR, {"error": str(error)})
            status = "aborted" if entry.cancel_requested else "failed"
            return JobExecutionResult(job_name=JOB_NAME, status=status, operation_id=record.operation_id)
        finally:
            self._registry.registry_remove(key, entry)

        await self._job_finish(operation, entry, OPERATION_STATUS_COMPLETED, {"message": "Analysis generation complete"})
        logger.info("%s generation complete", key)
        return JobExecutionResult(job_name=JOB_NAME, status="success", operation_id=record.operation_id)

    async def job_kill_analysis_process(self, project_id: int, scenario_id: int) -> str:
        """Stop the earliest active stage of a key.

        Args:
            project_id: Project identifier.
            scenario_id: Scenario identifier.

        Returns:
            str: Registry slot that got killed, or `analysis` when the forced
            container removal was submitted instead.
        """

        key = JobKey(project_id=project_id, scenario_id=scenario_id)
        entry = self._registry.registry_get(key)
        if entry is not None:
            entry.cancel_requested = True
            active_stage = entry.entry_active_stage()
            if active_stage is not None:
                slot, handle = active_stage
                handle.kill()
                entry.entry_clear(slot, handle)
                logger.info("%s killed %s", key, slot)
                return slot

        self._supervisor.job_submit(
            self._container_service.adapter_force_remove(key),
            name=f"force-remove {key}",
        )
        logger.info("%s forced analysis container removal", key)
        return "analysis"

    async def _job_plan_stages(self, key: JobKey) -> tuple[JobStage, ...]:
        settings = await self._scenario_repository.db_scenario_settings_get_many(
            scenario_id=key.scenario_id,
            keys=EXPORT_DECISION_SETTING_KEYS,
        )
        if domain_road_network_needs_export(settings):
            logger.info("%s road network changed since last generation, exporting", key)
            return (*self._export_stages, self._analysis_stage)
        return (self._analysis_stage,)

    async def _job_finish(
        self,
        operation: OperationLog,
        entry: JobProcessEntry,
        status: str,
        data: dict[str, Any],
    ) -> None:
        """Finish the operation unless another path already did or owns it.

        The abort path finishes the operation itself once cancellation is
        requested, so the job leaves it alone in that case.
        """

        if entry.cancel_requested:
            logger.info("Operation %s aborted, leaving finish to the abort request", operation.operation_id())
            return
        try:
            await operation.operation_refresh()
            if operation.operation_is_completed():
                return
            await operation.operation_finish(status, data)
        except OperationStateError as error:
            logger.info("Operation %s already finished: %s", operation.operation_id(), error)
        except (OrchestratorError, RuntimeError) as error:
            logger.error("Operation %s could not be finished: %s", operation.operation_id(), error)

    @staticmethod
    def _job_error_data(error: Exception) -> dict[str, Any]:
        data: dict[str, Any] = {"error": str(error)}
        if isinstance(error, ProcessFailureError) and error.exit_code is not None:
            data["exit_code"] = error.exit_code
        return data
