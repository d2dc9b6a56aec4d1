"""Alembic environment — runs storefront migrations over the async engine.

Design Decisions:
    - The URL comes from Settings (DATABASE_URL / .env), so migrations and the
      API always target the same database; alembic.ini only holds logging config
    - storefront.models imported for autogenerate: every table registers on Base
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

import storefront.models  # noqa: F401
from storefront.config import get_settings
from storefront.db.base import Base

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _configure(**options) -> None:
    context.configure(
        target_metadata=target_metadata, compare_type=True, **options,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_offline() -> None:
    """Emit SQL without connecting (alembic upgrade --sql)."""
    _configure(
        url=get_settings().database_url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )


def _run_on(connection: Connection) -> None:
    _configure(connection=connection)


async def run_online() -> None:
    engine = create_async_engine(get_settings().database_url, poolclass=pool.NullPool)
    async with engine.connect() as connection:
        await connection.run_sync(_run_on)
    await engine.dispose()


if context.is_offline_mode():
    run_offline()
else:
    asyncio.run(run_online())
