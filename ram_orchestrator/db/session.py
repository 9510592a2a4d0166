"""Database engine utilities.

This module centralizes database connectivity primitives to enforce the db-layer
boundary for all SQLAlchemy usage.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine


def db_create_engine(database_url: str) -> AsyncEngine:
    """Create the SQLAlchemy async engine for application database access.

    Args:
        database_url: SQLAlchemy database URL with an async-capable driver.

    Returns:
        AsyncEngine: Configured SQLAlchemy async engine.

    Raises:
        ValueError: Raised when the database URL is blank.
    """

    if not database_url.strip():
        raise ValueError("database_url must not be blank")

    return create_async_engine(database_url, pool_pre_ping=True)
