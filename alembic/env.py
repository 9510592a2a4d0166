"""Alembic environment for the operations schema.

The database URL comes from `DATABASE_URL` (or `.env`) unless the caller
already set `sqlalchemy.url` on the Alembic config.
"""
# pylint: disable=no-member,invalid-name,wrong-import-order

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from ram_orchestrator.config import config_load_database_url

alembic_config = context.config

if alembic_config.config_file_name is not None and alembic_config.attributes.get("configure_logger", True):
    fileConfig(alembic_config.config_file_name, disable_existing_loggers=False)

if not alembic_config.get_main_option("sqlalchemy.url"):
    alembic_config.set_main_option("sqlalchemy.url", config_load_database_url())


def migration_run_offline() -> None:
    """Emit migration SQL without a live connection."""

    context.configure(
        url=alembic_config.get_main_option("sqlalchemy.url"),
        target_metadata=None,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def migration_run_online() -> None:
    """Apply migrations over a live connection."""

    connectable = engine_from_config(
        alembic_config.get_section(alembic_config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    try:
        with connectable.connect() as connection:
            context.configure(connection=connection, target_metadata=None)
            with context.begin_transaction():
                context.run_migrations()
    finally:
        connectable.dispose()


if context.is_offline_mode():
    migration_run_offline()
else:
    migration_run_online()
