"""Adapter layer package for external process, container and storage boundaries."""

from .container_service import (
	SUPPORTED_CONTAINER_SERVICES,
	AnalysisProcessHandle,
	ContainerServiceAdapter,
	ContainerServiceConfig,
)
from .interfaces import (
	ContainerServicePort,
	ObjectStoragePort,
	OperationLogSink,
	ScenarioDatabaseCloserPort,
	ServiceRunnerPort,
	StageHandle,
	VectorTilesPort,
)
from .process import SpawnCallable, SubprocessHandle
from .scenario_database import ScenarioDatabaseRegistry
from .service_runner import ServiceHandle, ServiceRunnerAdapter
from .storage import S3ObjectStorageAdapter, adapter_create_s3_client
from .vector_tiles import VectorTilesAdapter, VectorTilesHandle

__all__ = [
	"SUPPORTED_CONTAINER_SERVICES",
	"AnalysisProcessHandle",
	"ContainerServiceAdapter",
	"ContainerServiceConfig",
	"ContainerServicePort",
	"ObjectStoragePort",
	"OperationLogSink",
	"ScenarioDatabaseCloserPort",
	"ServiceRunnerPort",
	"StageHandle",
	"VectorTilesPort",
	"SpawnCallable",
	"SubprocessHandle",
	"ScenarioDatabaseRegistry",
	"ServiceHandle",
	"ServiceRunnerAdapter",
	"S3ObjectStorageAdapter",
	"adapter_create_s3_client",
	"VectorTilesAdapter",
	"VectorTilesHandle",
]
