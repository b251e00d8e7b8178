"""Standalone session factories for cron jobs and scripts.

Invariants:
    - The engine behind a session_scope() factory is disposed when the block exits
    - Sessions never expire attributes on commit (same as the request sessions)
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine


def create_session_factory(database_url: str) -> async_sessionmaker[AsyncSession]:
    engine = create_async_engine(database_url, pool_pre_ping=True)
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@asynccontextmanager
async def session_scope(database_url: str) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """One engine per job run; yields its session factory."""
    factory = create_session_factory(database_url)
    try:
        yield factory
    finally:
        await factory.kw["bind"].dispose()
