"""Database configuration, session management and units of work."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from tracksubs.core.config import get_settings
from tracksubs.core.exceptions import ConflictError, TransientStoreError
from tracksubs.core.logging import get_logger

settings = get_settings()
logger = get_logger(__name__)

_ATOMIC_DEPTH = "tracksubs_atomic_depth"

_engine_options: dict[str, Any] = {"echo": settings.debug, "pool_pre_ping": True}
if not settings.uses_sqlite:
    _engine_options.update(
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
    )

engine: AsyncEngine = create_async_engine(settings.database_url, **_engine_options)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that yields a request-scoped database session.

    Writes are committed by ``atomic`` inside the route, before the response
    is built. Anything still open when the request ends is rolled back on
    close.
    """
    async with async_session_factory() as session:
        yield session


@asynccontextmanager
async def atomic(session: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """Run a block of writes as a single unit of work.

    The outermost block commits on success; nested blocks only flush and
    leave the commit to it. If anything inside the block raises, including
    the commit itself, the session is rolled back so none of the block's
    writes survive, and storage-layer errors are translated into the
    service exception hierarchy.
    """
    depth = session.info.get(_ATOMIC_DEPTH, 0)
    session.info[_ATOMIC_DEPTH] = depth + 1
    try:
        yield session
        if depth:
            await session.flush()
        else:
            await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        logger.warning("unit_of_work_conflict", error=str(exc.orig))
        raise ConflictError(details={"constraint": str(exc.orig)}) from exc
    except (OperationalError, InterfaceError, DBAPIError) as exc:
        await session.rollback()
        logger.error("unit_of_work_store_failure", error_type=type(exc).__name__)
        raise TransientStoreError() from exc
    except Exception:
        await session.rollback()
        raise
    finally:
        session.info[_ATOMIC_DEPTH] = depth


async def check_database_connection() -> bool:
    """Check if database connection is healthy."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
