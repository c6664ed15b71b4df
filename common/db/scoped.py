"""
Operation-scoped database sessions.

Repositories acquire a session per operation and release it right away,
unless they run inside a transaction() block, in which case they join it.

Usage:
    # Single operation - acquires and releases immediately
    async with get_session() as session:
        result = await session.get(TenantEntity, tenant_id)

    # Several operations committed together
    async with transaction():
        await tenant_repo.save(student)
        await link_repo.save(link)
"""

import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from common.core.otel_axiom_exporter import get_logger
from common.db.session import AsyncSessionLocal, AsyncSessionLocalReadonly
from common.db.context import (
    get_current_session,
    set_current_session,
    reset_current_session,
    is_readonly_forced,
)

logger = get_logger(__name__)


def _session_factory(readonly: bool):
    # Looked up at call time so tests can swap the factories on this module.
    return AsyncSessionLocalReadonly if readonly else AsyncSessionLocal


@asynccontextmanager
async def transaction(readonly: bool = False) -> AsyncGenerator[AsyncSession, None]:
    """
    Explicit transaction boundary.

    All DB operations inside share one session. Commits on success (unless
    readonly), rolls back and re-raises on exception. A transaction opened
    inside another write transaction joins the outer one.
    """
    effective_readonly = readonly or is_readonly_forced()
    existing = get_current_session(readonly=effective_readonly)
    if existing is not None:
        yield existing
        return

    start = time.perf_counter()
    async with _session_factory(effective_readonly)() as session:
        logger.debug(
            f"Transaction session acquire: {(time.perf_counter() - start) * 1000:.2f}ms, readonly={effective_readonly}"
        )

        token = set_current_session(session, readonly=effective_readonly)
        try:
            yield session
            if not effective_readonly:
                await session.commit()
        except Exception as e:
            logger.error(f"Transaction rollback due to: {e}")
            await session.rollback()
            raise
        finally:
            reset_current_session(token, readonly=effective_readonly)


@asynccontextmanager
async def savepoint() -> AsyncGenerator[AsyncSession, None]:
    """
    Nested transaction inside the enclosing transaction() block.

    An exception rolls back only the work done inside the savepoint and
    leaves the outer transaction usable. Without an enclosing transaction
    this is a plain transaction().
    """
    existing = get_current_session()
    if existing is None:
        async with transaction() as session:
            yield session
        return

    async with existing.begin_nested():
        yield existing


@asynccontextmanager
async def get_session(readonly: bool = False) -> AsyncGenerator[AsyncSession, None]:
    """
    Get a session for a single DB operation.

    Reuses the session of an enclosing transaction() block; otherwise
    acquires a new one, commits (unless readonly) and releases it.
    """
    effective_readonly = readonly or is_readonly_forced()
    existing = get_current_session(readonly=effective_readonly)

    if existing is not None:
        yield existing
        return

    async with _session_factory(effective_readonly)() as session:
        try:
            yield session
            if not effective_readonly:
                await session.commit()
        except Exception as e:
            logger.error(f"Operation rollback due to: {e}")
            await session.rollback()
            raise
