"""Domain models, errors and rules used across application layer boundaries."""

from .errors import (
	ConfigurationError,
	DataConflictError,
	JobAbortedError,
	NotFoundError,
	OperationAlreadyRunningError,
	OperationNotFoundError,
	OperationStateError,
	OrchestratorError,
	ProcessFailureError,
	ProjectNotFoundError,
	ScenarioNotFoundError,
	ServiceError,
)
from .models import (
	GENERATE_ANALYSIS_OPERATION,
	OPERATION_STATUS_COMPLETED,
	OPERATION_STATUS_ERROR,
	OPERATION_STATUS_NOT_STARTED,
	OPERATION_STATUS_RUNNING,
	OPERATION_TERMINAL_STATUSES,
	RESULT_FILE_TYPES,
	ROAD_NETWORK_FILE_TYPE,
	HealthStatus,
	JobKey,
)
from .scenario_settings import (
	EXPORT_DECISION_SETTING_KEYS,
	SETTING_ADMIN_AREAS,
	domain_admin_areas_selected,
	domain_parse_setting_timestamp_ms,
	domain_road_network_needs_export,
)
from .timeline import domain_build_log_entry

__all__ = [
	"ConfigurationError",
	"DataConflictError",
	"JobAbortedError",
	"NotFoundError",
	"OperationAlreadyRunningError",
	"OperationNotFoundError",
	"OperationStateError",
	"OrchestratorError",
	"ProcessFailureError",
	"ProjectNotFoundError",
	"ScenarioNotFoundError",
	"ServiceError",
	"GENERATE_ANALYSIS_OPERATION",
	"OPERATION_STATUS_COMPLETED",
	"OPERATION_STATUS_ERROR",
	"OPERATION_STATUS_NOT_STARTED",
	"OPERATION_STATUS_RUNNING",
	"OPERATION_TERMINAL_STATUSES",
	"RESULT_FILE_TYPES",
	"ROAD_NETWORK_FILE_TYPE",
	"HealthStatus",
	"JobKey",
	"EXPORT_DECISION_SETTING_KEYS",
	"SETTING_ADMIN_AREAS",
	"domain_admin_areas_selected",
	"domain_parse_setting_timestamp_ms",
	"domain_road_network_needs_export",
	"domain_build_log_entry",
]
