"""Alembic runner for the HIVE schema.

Invariants:
    - Every model module is imported before target_metadata is read
    - The URL comes from hive.config Settings (DATABASE_URL), so the asyncpg driver
      prefix is applied the same way the app applies it

Design Decisions:
    - Online migrations run on an async engine with NullPool inside asyncio.run
"""

import asyncio
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.ext.asyncio import create_async_engine

from alembic import context

from hive.config import get_settings
from hive.db.base import Base
import hive.models  # noqa: F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata
DATABASE_URL = get_settings().database_url


def _configure(**kwargs) -> None:
    context.configure(target_metadata=target_metadata, compare_type=True, **kwargs)
    with context.begin_transaction():
        context.run_migrations()


async def _migrate_online() -> None:
    engine = create_async_engine(DATABASE_URL, poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(lambda conn: _configure(connection=conn))
    finally:
        await engine.dispose()


if context.is_offline_mode():
    _configure(url=DATABASE_URL, literal_binds=True, dialect_opts={"paramstyle": "named"})
else:
    asyncio.run(_migrate_online())
