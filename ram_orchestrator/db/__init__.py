"""Database layer package for all SQL and persistence boundaries."""

from .health import SQLAlchemyDatabaseHealthService
from .interfaces import (
	DatabaseHealthPort,
	OperationLogRecord,
	OperationRecord,
	OperationRepositoryPort,
	ProjectRecord,
	ScenarioFileRecord,
	ScenarioRecord,
	ScenarioRepositoryPort,
)
from .operation import SQLAlchemyOperationService
from .scenario import SQLAlchemyScenarioService
from .session import db_create_engine

__all__ = [
	"DatabaseHealthPort",
	"OperationLogRecord",
	"OperationRecord",
	"OperationRepositoryPort",
	"ProjectRecord",
	"ScenarioFileRecord",
	"ScenarioRecord",
	"ScenarioRepositoryPort",
	"SQLAlchemyDatabaseHealthService",
	"SQLAlchemyOperationService",
	"SQLAlchemyScenarioService",
	"db_create_engine",
]
