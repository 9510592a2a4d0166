"""Database health service implementations for connectivity checks."""

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from ram_orchestrator.domain import HealthStatus

from .interfaces import DatabaseHealthPort


class SQLAlchemyDatabaseHealthService(DatabaseHealthPort):
    """Database health service backed by SQLAlchemy engine connectivity checks."""

    def __init__(self, engine: AsyncEngine):
        """Initialize database health service.

        Args:
            engine: SQLAlchemy async engine used for connectivity checks.

        Raises:
            ValueError: Raised when engine is None.
        """

        if engine is None:
            raise ValueError("engine must not be None")
        self._engine = engine

    def db_connection_label(self) -> str:
        """Return the target database URL for diagnostics.

        Returns:
            str: Rendered engine URL string with the password hidden.
        """

        return self._engine.url.render_as_string(hide_password=True)

    async def db_check_health(self) -> HealthStatus:
        """Verify connectivity and that the operations schema has been migrated.

        Returns:
            HealthStatus: `ok`, or `schema-missing` when the operations table is absent.

        Raises:
            ConnectionError: Raised when the database cannot be reached.
        """

        try:
            async with self._engine.connect() as connection:
                result = await connection.execute(text("SELECT to_regclass('operations') IS NOT NULL"))
                schema_ready = bool(result.scalar())
        except SQLAlchemyError as error:
            raise ConnectionError("database connectivity check failed") from error

        if not schema_ready:
            return HealthStatus(status="schema-missing", detail="operations table not found; run alembic upgrade head")
        return HealthStatus(status="ok", detail="database connectivity verified")
