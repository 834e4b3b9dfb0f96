from collections.abc import AsyncGenerator
from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncSession

from simcast.db.session import async_session_factory
from simcast.services.platforms.registry import AdapterRegistry, build_registry


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields an async database session.

    The session is automatically closed when the request finishes.
    """
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


@lru_cache
def get_registry() -> AdapterRegistry:
    """Platform adapters configured from settings, built once per process."""
    return build_registry()
