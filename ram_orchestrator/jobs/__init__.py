"""Job layer package for result generation orchestration boundaries."""

from .interfaces import JobExecutionResult, ResultsJobPort
from .admission import ResultsAdmissionService
from .operation_log import OperationLog
from .orchestrator import ResultsGenerationOrchestrator
from .process_registry import (
	REGISTRY_SLOTS,
	SLOT_GEN_VT,
	SLOT_UPDATE_RN,
	JobProcessEntry,
	ProcessRegistry,
)
from .stages import (
	EXPORT_ROAD_NETWORK_STAGE,
	GENERATE_VECTOR_TILES_STAGE,
	RUN_ANALYSIS_CONTAINER_STAGE,
	ExportRoadNetworkStage,
	GenerateVectorTilesStage,
	JobStage,
	JobStageContext,
	RunAnalysisContainerStage,
	job_run_stages,
)
from .supervisor import JobTaskSupervisor

__all__ = [
	"JobExecutionResult",
	"ResultsJobPort",
	"ResultsAdmissionService",
	"OperationLog",
	"ResultsGenerationOrchestrator",
	"REGISTRY_SLOTS",
	"SLOT_GEN_VT",
	"SLOT_UPDATE_RN",
	"JobProcessEntry",
	"ProcessRegistry",
	"EXPORT_ROAD_NETWORK_STAGE",
	"GENERATE_VECTOR_TILES_STAGE",
	"RUN_ANALYSIS_CONTAINER_STAGE",
	"ExportRoadNetworkStage",
	"GenerateVectorTilesStage",
	"JobStage",
	"JobStageContext",
	"RunAnalysisContainerStage",
	"job_run_stages",
	"JobTaskSupervisor",
]
