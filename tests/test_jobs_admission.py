"""Regression tests for result generation admission and abort handling."""

from __future__ import annotations

import asyncio

import pytest

from ram_orchestrator.db import ScenarioFileRecord
from ram_orchestrator.domain import DataConflictError, JobKey, ProjectNotFoundError, ScenarioNotFoundError
from ram_orchestrator.jobs import (
    JobTaskSupervisor,
    ProcessRegistry,
    ResultsAdmissionService,
    ResultsGenerationOrchestrator,
)

from stubs import (
    ContainerServiceStub,
    InMemoryOperationRepository,
    InMemoryScenarioRepository,
    ScenarioDatabaseStub,
    ServiceRunnerStub,
    StorageStub,
    VectorTilesStub,
    wait_until,
)

KEY = JobKey(project_id=1, scenario_id=2)


def _result_file(file_id: int, file_type: str) -> ScenarioFileRecord:
    return ScenarioFileRecord(
        file_id=file_id,
        project_id=1,
        scenario_id=2,
        name=f"results_{file_id}",
        file_type=file_type,
        path=f"project-1/scenario-2/results_{file_id}",
    )


class _Harness:
    """Admission service wired to in-memory stubs."""

    def __init__(
        self,
        scenarios: InMemoryScenarioRepository | None = None,
        storage: StorageStub | None = None,
        generation_enabled: bool = True,
        tiles_auto: bool = True,
        analysis_auto: bool = True,
    ):
        self.events: list[str] = []
        self.operations = InMemoryOperationRepository()
        self.scenarios = scenarios or InMemoryScenarioRepository()
        self.storage = storage or StorageStub()
        self.registry = ProcessRegistry()
        self.supervisor = JobTaskSupervisor()
        self.vector_tiles = VectorTilesStub(self.events, auto=tiles_auto)
        self.container = ContainerServiceStub(self.events, auto=analysis_auto)
        self.orchestrator = ResultsGenerationOrchestrator(
            operation_repository=self.operations,
            scenario_repository=self.scenarios,
            registry=self.registry,
            supervisor=self.supervisor,
            service_runner=ServiceRunnerStub(self.events),
            vector_tiles=self.vector_tiles,
            container_service=self.container,
            scenario_database=ScenarioDatabaseStub(self.events),
        )
        self.service = ResultsAdmissionService(
            operation_repository=self.operations,
            scenario_repository=self.scenarios,
            storage=self.storage,
            orchestrator=self.orchestrator,
            supervisor=self.supervisor,
            generation_enabled=generation_enabled,
        )


def test_admission_deletes_previous_results_and_runs_in_background() -> None:
    scenarios = InMemoryScenarioRepository(
        files=[_result_file(1, "results-csv"), _result_file(2, "results-geojson"), _result_file(3, "road-network")]
    )
    harness = _Harness(scenarios=scenarios)

    async def scenario() -> str:
        result = await harness.service.job_admit_generation(project_id=1, scenario_id=2)
        # The job is detached: no stage has run when admission returns.
        assert harness.events == []
        await harness.supervisor.job_wait_idle()
        return result.status

    assert asyncio.run(scenario()) == "started"
    assert sorted(harness.storage.removed) == ["project-1/scenario-2/results_1", "project-1/scenario-2/results_2"]
    assert sorted(scenarios.deleted_file_ids) == [1, 2]
    assert scenarios.results_deleted == [(1, 2)]
    assert harness.operations.operations[1].status == "completed"


def test_admission_rejects_running_generation() -> None:
    harness = _Harness()

    async def scenario() -> None:
        await harness.operations.db_operation_create_started("generate-analysis", 1, 2)
        await harness.service.job_admit_generation(project_id=1, scenario_id=2)

    with pytest.raises(DataConflictError, match="already running"):
        asyncio.run(scenario())
    assert harness.scenarios.results_deleted == []


@pytest.mark.parametrize(
    ("scenarios", "error_type", "message"),
    [
        (InMemoryScenarioRepository(project_status="pending"), DataConflictError, "Project setup not completed"),
        (InMemoryScenarioRepository(settings={"admin_areas": "[]"}), DataConflictError, "No admin areas selected"),
    ],
)
def test_admission_rejects_unmet_preconditions(scenarios, error_type, message) -> None:
    harness = _Harness(scenarios=scenarios)

    with pytest.raises(error_type, match=message):
        asyncio.run(harness.service.job_admit_generation(project_id=1, scenario_id=2))
    assert harness.operations.operations == {}


def test_admission_reports_missing_project_and_scenario() -> None:
    harness = _Harness()

    with pytest.raises(ProjectNotFoundError):
        asyncio.run(harness.service.job_admit_generation(project_id=99, scenario_id=2))
    with pytest.raises(ScenarioNotFoundError):
        asyncio.run(harness.service.job_admit_generation(project_id=1, scenario_id=99))


def test_admission_tolerates_blob_removal_failure() -> None:
    scenarios = InMemoryScenarioRepository(files=[_result_file(1, "results-csv")])
    harness = _Harness(scenarios=scenarios, storage=StorageStub(failing_paths=["project-1/scenario-2/results_1"]))

    async def scenario() -> str:
        result = await harness.service.job_admit_generation(project_id=1, scenario_id=2)
        await harness.supervisor.job_wait_idle()
        return result.status

    assert asyncio.run(scenario()) == "started"
    assert scenarios.deleted_file_ids == [1]


def test_admission_with_generation_disabled_does_not_start_operation() -> None:
    harness = _Harness(generation_enabled=False)

    result = asyncio.run(harness.service.job_admit_generation(project_id=1, scenario_id=2))

    assert result.status == "skipped"
    assert harness.operations.operations == {}
    assert harness.scenarios.results_deleted == [(1, 2)]


def test_abort_without_running_generation_is_conflict_and_kills_nothing() -> None:
    harness = _Harness()

    with pytest.raises(DataConflictError, match="not running"):
        asyncio.run(harness.service.job_abort_generation(project_id=1, scenario_id=2))
    assert harness.container.removed == []
    assert harness.supervisor.job_active_count == 0


def test_abort_after_completion_is_conflict() -> None:
    harness = _Harness()

    async def scenario() -> None:
        await harness.service.job_admit_generation(project_id=1, scenario_id=2)
        await harness.supervisor.job_wait_idle()
        await harness.service.job_abort_generation(project_id=1, scenario_id=2)

    with pytest.raises(DataConflictError):
        asyncio.run(scenario())
    assert harness.container.removed == []


def test_abort_during_tiles_marks_operation_aborted() -> None:
    harness = _Harness(
        scenarios=InMemoryScenarioRepository(
            settings={
                "rn_active_editing": "true",
                "res_gen_at": "0",
                "rn_updated_at": "2026-03-01T10:00:00Z",
            },
            files=[_result_file(5, "road-network")],
        ),
        tiles_auto=False,
    )

    async def scenario() -> str:
        await harness.service.job_admit_generation(project_id=1, scenario_id=2)
        await wait_until(lambda: harness.vector_tiles.handle is not None)
        result = await harness.service.job_abort_generation(project_id=1, scenario_id=2)
        await harness.supervisor.job_wait_idle()
        return result.status

    assert asyncio.run(scenario()) == "aborted"
    operation = harness.operations.operations[1]
    assert operation.status == "error"
    assert harness.operations.logs[-1].event == "error"
    assert harness.operations.logs[-1].data == {"error": "Operation aborted"}
    assert "start:analysis" not in harness.events
    assert len(harness.registry) == 0


def test_abort_during_analysis_force_removes_container() -> None:
    harness = _Harness(analysis_auto=False)

    async def scenario() -> None:
        await harness.service.job_admit_generation(project_id=1, scenario_id=2)
        await wait_until(lambda: harness.container.handle is not None)
        await harness.service.job_abort_generation(project_id=1, scenario_id=2)
        await harness.supervisor.job_wait_idle()

    asyncio.run(scenario())

    assert harness.container.removed == [KEY]
    assert harness.operations.operations[1].status == "error"
    assert [log.event for log in harness.operations.logs].count("error") == 1
