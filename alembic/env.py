"""Alembic migration runner for the blog schema (async engine)."""

import asyncio
from logging.config import fileConfig

from alembic import context

from blogapi.config import settings
from blogapi.database import Base, Database

# Register every model on Base.metadata for autogenerate.
import blogapi.models  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Credentials come from Settings (.env / environment), not alembic.ini.
config.set_main_option("sqlalchemy.url", settings.DATABASE_URL)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of touching a database."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection):
    context.configure(connection=connection, target_metadata=target_metadata)
    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    # Same engine options (timeouts, SQLite FK pragma) as the application.
    db = Database(settings.DATABASE_URL)
    async with db.engine.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await db.dispose()


def run_migrations_online() -> None:
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
