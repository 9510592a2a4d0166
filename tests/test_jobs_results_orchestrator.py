"""Regression tests for result generation stage sequencing and cancellation."""

from __future__ import annotations

import asyncio

import pytest

from ram_orchestrator.db import ScenarioFileRecord
from ram_orchestrator.domain import JobAbortedError, JobKey
from ram_orchestrator.jobs import (
    JobStageContext,
    JobTaskSupervisor,
    ProcessRegistry,
    ResultsGenerationOrchestrator,
    RunAnalysisContainerStage,
    job_run_stages,
)

from stubs import (
    ContainerServiceStub,
    InMemoryOperationRepository,
    InMemoryScenarioRepository,
    ScenarioDatabaseStub,
    ServiceRunnerStub,
    VectorTilesStub,
    wait_until,
)

KEY = JobKey(project_id=1, scenario_id=2)
STALE_ROAD_NETWORK_SETTINGS = {
    "rn_active_editing": "true",
    "res_gen_at": "2026-01-01T00:00:00Z",
    "rn_updated_at": "2026-01-02T08:30:00Z",
}
ROAD_NETWORK_FILE = ScenarioFileRecord(
    file_id=7,
    project_id=1,
    scenario_id=2,
    name="road-network",
    file_type="road-network",
    path="project-1/scenario-2/road-network_7",
)


class _Harness:
    """Orchestrator wired to in-memory stubs recording stage events."""

    def __init__(
        self,
        settings: dict[str, str] | None = None,
        export_auto: bool = True,
        tiles_auto: bool = True,
        analysis_auto: bool = True,
        exit_code: int = 0,
        stderr: str = "",
    ):
        self.events: list[str] = []
        self.operations = InMemoryOperationRepository()
        self.scenarios = InMemoryScenarioRepository(settings=settings, files=[ROAD_NETWORK_FILE])
        self.registry = ProcessRegistry()
        self.supervisor = JobTaskSupervisor()
        self.service_runner = ServiceRunnerStub(self.events, auto=export_auto)
        self.vector_tiles = VectorTilesStub(self.events, auto=tiles_auto)
        self.container = ContainerServiceStub(self.events, exit_code=exit_code, stderr=stderr, auto=analysis_auto)
        self.orchestrator = ResultsGenerationOrchestrator(
            operation_repository=self.operations,
            scenario_repository=self.scenarios,
            registry=self.registry,
            supervisor=self.supervisor,
            service_runner=self.service_runner,
            vector_tiles=self.vector_tiles,
            container_service=self.container,
            scenario_database=ScenarioDatabaseStub(self.events),
        )

    def status(self, operation_id: int = 1) -> str:
        return self.operations.operations[operation_id].status


def test_generation_without_active_editing_runs_only_analysis() -> None:
    harness = _Harness(settings={"rn_active_editing": "false", "rn_updated_at": "2026-01-02T00:00:00Z"})

    result = asyncio.run(harness.orchestrator.job_generate_results(project_id=1, scenario_id=2))

    assert result.status == "success"
    assert harness.events == ["pull:analysis", "start:analysis"]
    assert harness.status() == "completed"
    assert harness.operations.events() == ["start", "completed"]
    assert harness.operations.logs[0].data == {"message": "Analysis generation started"}
    assert KEY not in harness.registry


def test_generation_with_stale_road_network_exports_then_tiles_then_analysis() -> None:
    harness = _Harness(settings=STALE_ROAD_NETWORK_SETTINGS)

    result = asyncio.run(harness.orchestrator.job_generate_results(project_id=1, scenario_id=2))

    assert result.status == "success"
    assert harness.events == [
        "close:scenario-db",
        "start:export-road-network",
        "start:generate-vector-tiles",
        "pull:analysis",
        "start:analysis",
    ]
    assert harness.service_runner.calls == [
        ("export-road-network", KEY, {"project_id": 1, "scenario_id": 2, "operation_id": 1}),
    ]
    assert harness.vector_tiles.file_paths == [ROAD_NETWORK_FILE.path]
    assert harness.container.spawned == [(KEY, 1)]
    assert harness.status() == "completed"


def test_generation_skips_export_when_road_network_unchanged() -> None:
    settings = dict(STALE_ROAD_NETWORK_SETTINGS, rn_updated_at="2026-01-01T00:00:00Z")
    harness = _Harness(settings=settings)

    asyncio.run(harness.orchestrator.job_generate_results(project_id=1, scenario_id=2))

    assert "start:export-road-network" not in harness.events
    assert harness.events[-1] == "start:analysis"


def test_generation_nonzero_exit_finishes_with_stderr_and_clears_registry() -> None:
    harness = _Harness(exit_code=3, stderr="analysis crashed: missing admin areas")

    result = asyncio.run(harness.orchestrator.job_generate_results(project_id=1, scenario_id=2))

    assert result.status == "failed"
    assert harness.status() == "error"
    assert harness.operations.logs[-1].event == "error"
    assert harness.operations.logs[-1].data == {"error": "analysis crashed: missing admin areas", "exit_code": 3}
    assert len(harness.registry) == 0


class _TransferFailed(Exception):
    """Failure type outside the orchestrator's expected error families."""


def test_generation_unexpected_stage_failure_still_finishes_with_error() -> None:
    harness = _Harness(settings=STALE_ROAD_NETWORK_SETTINGS, tiles_auto=False)

    async def scenario() -> str:
        task = asyncio.create_task(harness.orchestrator.job_generate_results(project_id=1, scenario_id=2))
        await wait_until(lambda: harness.vector_tiles.handle is not None)
        harness.vector_tiles.handle.finish(_TransferFailed("upload of tile 3/4/5 failed"))
        result = await task
        return result.status

    assert asyncio.run(scenario()) == "failed"
    assert harness.status() == "error"
    assert harness.operations.logs[-1].data == {"error": "upload of tile 3/4/5 failed"}
    assert harness.container.spawned == []
    assert len(harness.registry) == 0


def test_generation_refuses_second_start_for_running_key() -> None:
    harness = _Harness()

    async def scenario() -> str:
        await harness.operations.db_operation_create_started("generate-analysis", 1, 2)
        result = await harness.orchestrator.job_generate_results(project_id=1, scenario_id=2)
        return result.status

    assert asyncio.run(scenario()) == "failed"
    assert harness.events == []


def test_stage_slots_are_never_occupied_together() -> None:
    harness = _Harness(settings=STALE_ROAD_NETWORK_SETTINGS, export_auto=False, tiles_auto=False)
    observed: list[tuple[bool, bool]] = []

    async def scenario() -> None:
        task = asyncio.create_task(harness.orchestrator.job_generate_results(project_id=1, scenario_id=2))
        await wait_until(lambda: harness.service_runner.handle is not None)
        entry = harness.registry.registry_get(KEY)
        observed.append((entry.update_rn is not None, entry.gen_vt is not None))

        harness.service_runner.handle.finish()
        await wait_until(lambda: harness.vector_tiles.handle is not None)
        observed.append((entry.update_rn is not None, entry.gen_vt is not None))

        harness.vector_tiles.handle.finish()
        await task

    asyncio.run(scenario())

    assert observed == [(True, False), (False, True)]
    assert len(harness.registry) == 0


def test_kill_during_export_only_touches_export_stage() -> None:
    harness = _Harness(settings=STALE_ROAD_NETWORK_SETTINGS, export_auto=False)

    async def scenario() -> tuple[str, str]:
        task = asyncio.create_task(harness.orchestrator.job_generate_results(project_id=1, scenario_id=2))
        await wait_until(lambda: harness.service_runner.handle is not None)
        killed_slot = await harness.orchestrator.job_kill_analysis_process(project_id=1, scenario_id=2)
        result = await task
        return killed_slot, result.status

    killed_slot, status = asyncio.run(scenario())

    assert killed_slot == "update_rn"
    assert status == "aborted"
    assert harness.service_runner.handle.killed
    assert harness.vector_tiles.handle is None
    assert harness.container.spawned == []
    assert len(harness.registry) == 0


def test_kill_during_tiles_stops_before_analysis_spawns() -> None:
    harness = _Harness(settings=STALE_ROAD_NETWORK_SETTINGS, tiles_auto=False)

    async def scenario() -> str:
        task = asyncio.create_task(harness.orchestrator.job_generate_results(project_id=1, scenario_id=2))
        await wait_until(lambda: harness.vector_tiles.handle is not None)
        killed_slot = await harness.orchestrator.job_kill_analysis_process(project_id=1, scenario_id=2)
        await task
        return killed_slot

    assert asyncio.run(scenario()) == "gen_vt"
    assert "kill:generate-vector-tiles" in harness.events
    assert "pull:analysis" not in harness.events
    assert harness.container.spawned == []


def test_kill_during_analysis_force_removes_container() -> None:
    harness = _Harness(analysis_auto=False)

    async def scenario() -> str:
        task = asyncio.create_task(harness.orchestrator.job_generate_results(project_id=1, scenario_id=2))
        await wait_until(lambda: harness.container.handle is not None)
        killed_slot = await harness.orchestrator.job_kill_analysis_process(project_id=1, scenario_id=2)
        await harness.supervisor.job_wait_idle()
        result = await task
        assert result.status == "aborted"
        return killed_slot

    assert asyncio.run(scenario()) == "analysis"
    assert harness.container.removed == [KEY]
    assert len(harness.registry) == 0


def test_kill_without_registry_entry_still_force_removes() -> None:
    harness = _Harness()

    async def scenario() -> str:
        killed_slot = await harness.orchestrator.job_kill_analysis_process(project_id=1, scenario_id=2)
        await harness.supervisor.job_wait_idle()
        return killed_slot

    assert asyncio.run(scenario()) == "analysis"
    assert harness.container.removed == [KEY]


def test_stage_runner_refuses_to_start_after_cancel_request() -> None:
    harness = _Harness()

    async def scenario() -> None:
        operation = await harness.orchestrator.job_start_generation(project_id=1, scenario_id=2)
        entry = harness.registry.registry_get(KEY)
        entry.cancel_requested = True
        context = JobStageContext(key=KEY, operation=operation, entry=entry)
        await job_run_stages([RunAnalysisContainerStage(container_service=harness.container)], context)

    with pytest.raises(JobAbortedError):
        asyncio.run(scenario())
    assert harness.events == []
