"""Sequential stage runner for result generation jobs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol, Sequence

from ram_orchestrator.adapters import (
    ContainerServicePort,
    ScenarioDatabaseCloserPort,
    ServiceRunnerPort,
    StageHandle,
    VectorTilesPort,
)
from ram_orchestrator.db import ScenarioRepositoryPort
from ram_orchestrator.domain import (
    ROAD_NETWORK_FILE_TYPE,
    JobAbortedError,
    JobKey,
    NotFoundError,
)

from .operation_log import OperationLog
from .process_registry import SLOT_GEN_VT, SLOT_UPDATE_RN, JobProcessEntry

logger = logging.getLogger(__name__)

EXPORT_ROAD_NETWORK_STAGE = "export-road-network"
GENERATE_VECTOR_TILES_STAGE = "generate-vector-tiles"
RUN_ANALYSIS_CONTAINER_STAGE = "run-analysis-container"


@dataclass(frozen=True)
class JobStageContext:
    """Values shared by every stage of one job.

    Attributes:
        key: Job key.
        operation: Bound running operation.
        entry: Process registry entry owned by this job.
    """

    key: JobKey
    operation: OperationLog
    entry: JobProcessEntry


class JobStage(Protocol):
    """Stage descriptor executed by `job_run_stages`."""

    stage_name: str
    registry_slot: str | None

    async def stage_start(self, context: JobStageContext) -> StageHandle:
        """Start the stage work and return its handle."""

    async def stage_kill(self, context: JobStageContext, handle: StageHandle) -> None:
        """Stop work started by `stage_start`."""


class ExportRoadNetworkStage:
    """Runs the road network export service for one scenario."""

    stage_name = EXPORT_ROAD_NETWORK_STAGE
    registry_slot = SLOT_UPDATE_RN

    def __init__(self, service_runner: ServiceRunnerPort, scenario_database: ScenarioDatabaseCloserPort):
        self._service_runner = service_runner
        self._scenario_database = scenario_database

    async def stage_start(self, context: JobStageContext) -> StageHandle:
        # The export process needs exclusive access to the editing database.
        await self._scenario_database.adapter_close(context.key)
        return await self._service_runner.adapter_start_service(
            service_name=EXPORT_ROAD_NETWORK_STAGE,
            key=context.key,
            params={
                "project_id": context.key.project_id,
                "scenario_id": context.key.scenario_id,
                "operation_id": context.operation.operation_id(),
            },
        )

    async def stage_kill(self, context: JobStageContext, handle: StageHandle) -> None:
        handle.kill()


class GenerateVectorTilesStage:
    """Builds vector tiles from the stored road network file."""

    stage_name = GENERATE_VECTOR_TILES_STAGE
    registry_slot = SLOT_GEN_VT

    def __init__(self, scenario_repository: ScenarioRepositoryPort, vector_tiles: VectorTilesPort):
        self._scenario_repository = scenario_repository
        self._vector_tiles = vector_tiles

    async def stage_start(self, context: JobStageContext) -> StageHandle:
        """Look up the road network file and start tile generation.

        Raises:
            NotFoundError: Raised when the scenario has no road network file.
        """

        file_record = await self._scenario_repository.db_scenario_file_get_by_type(
            scenario_id=context.key.scenario_id,
            file_type=ROAD_NETWORK_FILE_TYPE,
        )
        if file_record is None:
            raise NotFoundError(f"Road network file not found for {context.key}")
        return self._vector_tiles.adapter_create_road_network_tiles(
            key=context.key,
            operation=context.operation,
            file_path=file_record.path,
        )

    async def stage_kill(self, context: JobStageContext, handle: StageHandle) -> None:
        handle.kill()


class RunAnalysisContainerStage:
    """Refreshes the analysis image and runs the analysis container."""

    stage_name = RUN_ANALYSIS_CONTAINER_STAGE
    registry_slot = None

    def __init__(self, container_service: ContainerServicePort):
        self._container_service = container_service

    async def stage_start(self, context: JobStageContext) -> StageHandle:
        await self._container_service.adapter_pull_image(context.key)
        if context.entry.cancel_requested:
            raise JobAbortedError(f"{context.key} aborted before analysis container start")
        return await self._container_service.adapter_spawn_analysis(
            key=context.key,
            operation_id=context.operation.operation_id(),
        )

    async def stage_kill(self, context: JobStageContext, handle: StageHandle) -> None:
        # Killing the client process leaves the container running.
        await self._container_service.adapter_force_remove(context.key)
        handle.kill()


async def job_run_stages(stages: Sequence[JobStage], context: JobStageContext) -> None:
    """Run stages strictly in order, registering each active handle.

    Args:
        stages: Ordered stage descriptors.
        context: Shared job values.

    Raises:
        JobAbortedError: Raised when cancellation was requested before a stage started.
        ServiceError: Raised when a sub-stage signalled failure or was killed.
        ProcessFailureError: Raised when the analysis process exited nonzero.
    """

    for stage in stages:
        if context.entry.cancel_requested:
            raise JobAbortedError(f"{context.key} aborted before {stage.stage_name}")

        logger.info("%s stage %s start", context.key, stage.stage_name)
        handle = await stage.stage_start(context)
        if stage.registry_slot is not None:
            context.entry.entry_assign(stage.registry_slot, handle)
        if context.entry.cancel_requested:
            # Cancellation arrived while the stage was starting.
            await stage.stage_kill(context, handle)

        try:
            await handle.stage_wait()
        finally:
            if stage.registry_slot is not None:
                context.entry.entry_clear(stage.registry_slot, handle)
        logger.info("%s stage %s done", context.key, stage.stage_name)
