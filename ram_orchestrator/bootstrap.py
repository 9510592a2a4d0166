"""Application bootstrap wiring for startup validation and dependency assembly."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncEngine

from ram_orchestrator.adapters import (
    ContainerServiceAdapter,
    ContainerServiceConfig,
    S3ObjectStorageAdapter,
    ScenarioDatabaseRegistry,
    ServiceRunnerAdapter,
    VectorTilesAdapter,
    adapter_create_s3_client,
)
from ram_orchestrator.api import create_api_application
from ram_orchestrator.config import AppSettings, config_load_settings
from ram_orchestrator.db import (
    SQLAlchemyDatabaseHealthService,
    SQLAlchemyOperationService,
    SQLAlchemyScenarioService,
    db_create_engine,
)
from ram_orchestrator.jobs import (
    EXPORT_ROAD_NETWORK_STAGE,
    JobTaskSupervisor,
    ProcessRegistry,
    ResultsAdmissionService,
    ResultsGenerationOrchestrator,
)


@dataclass(frozen=True)
class BootstrapComponents:
    """Wired runtime components shared by the API and CLI surfaces."""

    settings: AppSettings
    engine: AsyncEngine
    supervisor: JobTaskSupervisor
    orchestrator: ResultsGenerationOrchestrator
    admission_service: ResultsAdmissionService
    db_health_service: SQLAlchemyDatabaseHealthService


def bootstrap_create_components(settings: AppSettings | None = None) -> BootstrapComponents:
    """Assemble repositories, adapters and job services.

    Args:
        settings: Optional preloaded settings; loaded from the environment when omitted.

    Returns:
        BootstrapComponents: Wired components.

    Raises:
        SettingsLoadError: Raised when startup configuration validation fails.
    """

    resolved_settings = settings or config_load_settings()
    engine = db_create_engine(database_url=resolved_settings.database_url)
    operation_repository = SQLAlchemyOperationService(engine=engine)
    scenario_repository = SQLAlchemyScenarioService(engine=engine)
    storage = S3ObjectStorageAdapter(
        client=adapter_create_s3_client(
            engine=resolved_settings.storage_engine,
            host=resolved_settings.storage_host,
            port=resolved_settings.storage_port,
            access_key=resolved_settings.storage_access_key,
            secret_key=resolved_settings.storage_secret_key,
            region=resolved_settings.storage_region,
        ),
        bucket=resolved_settings.storage_bucket,
    )
    container_service = ContainerServiceAdapter(
        config=ContainerServiceConfig(
            service=resolved_settings.analysis_service,
            container=resolved_settings.analysis_container,
            instance_id=resolved_settings.instance_id,
            db_uri=resolved_settings.analysis_db_uri,
            storage_host=resolved_settings.analysis_storage_host,
            storage_port=resolved_settings.analysis_storage_port,
            storage_engine=resolved_settings.storage_engine,
            storage_access_key=resolved_settings.storage_access_key,
            storage_secret_key=resolved_settings.storage_secret_key,
            storage_bucket=resolved_settings.storage_bucket,
            storage_region=resolved_settings.storage_region,
            docker_network=resolved_settings.analysis_docker_network,
            hyper_access=resolved_settings.hyper_access,
            hyper_secret=resolved_settings.hyper_secret,
            hyper_size=resolved_settings.hyper_size,
        )
    )
    supervisor = JobTaskSupervisor()
    orchestrator = ResultsGenerationOrchestrator(
        operation_repository=operation_repository,
        scenario_repository=scenario_repository,
        registry=ProcessRegistry(),
        supervisor=supervisor,
        service_runner=ServiceRunnerAdapter(
            commands={EXPORT_ROAD_NETWORK_STAGE: resolved_settings.export_road_network_command},
        ),
        vector_tiles=VectorTilesAdapter(storage=storage, command=resolved_settings.vector_tiles_command),
        container_service=container_service,
        scenario_database=ScenarioDatabaseRegistry(),
    )
    admission_service = ResultsAdmissionService(
        operation_repository=operation_repository,
        scenario_repository=scenario_repository,
        storage=storage,
        orchestrator=orchestrator,
        supervisor=supervisor,
        generation_enabled=resolved_settings.results_generation_enabled,
    )
    return BootstrapComponents(
        settings=resolved_settings,
        engine=engine,
        supervisor=supervisor,
        orchestrator=orchestrator,
        admission_service=admission_service,
        db_health_service=SQLAlchemyDatabaseHealthService(engine=engine),
    )


def bootstrap_create_application(settings: AppSettings | None = None) -> FastAPI:
    """Assemble the runtime application after validating startup configuration.

    Returns:
        FastAPI: Fully initialized FastAPI application instance.

    Raises:
        SettingsLoadError: Raised when startup configuration validation fails.
    """

    components = bootstrap_create_components(settings=settings)
    return create_api_application(
        settings=components.settings,
        db_health_service=components.db_health_service,
        results_service=components.admission_service,
        supervisor=components.supervisor,
        on_shutdown=components.engine.dispose,
    )
