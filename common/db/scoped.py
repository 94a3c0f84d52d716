"""
Operation-scoped database sessions.

Repositories call get_session() for every operation. Outside a transaction
that acquires a connection, commits and releases it immediately, so no
connection is held while we wait on GitHub or the model API. Inside
transaction() all operations share the transaction's session and commit
together.
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
)

logger = get_logger(__name__)


def _session_factory(readonly: bool):
    return AsyncSessionLocalReadonly if readonly else AsyncSessionLocal


@asynccontextmanager
async def transaction(readonly: bool = False) -> AsyncGenerator[AsyncSession, None]:
    """
    Explicit transaction boundary.

    Commits on success (unless readonly), rolls back on exception and
    re-raises.
    """
    start = time.perf_counter()
    async with _session_factory(readonly)() as session:
        logger.debug(
            f"Transaction session acquire: {(time.perf_counter() - start) * 1000:.2f}ms, readonly={readonly}"
        )

        token = set_current_session(session, readonly=readonly)
        try:
            yield session
            if not readonly:
                await session.commit()
        except Exception as e:
            logger.warning(f"Transaction rollback due to: {e!r}")
            await session.rollback()
            raise
        finally:
            reset_current_session(token, readonly=readonly)


@asynccontextmanager
async def get_session(readonly: bool = False) -> AsyncGenerator[AsyncSession, None]:
    """
    Session for a single repository operation.

    Reuses the enclosing transaction's session when there is one; otherwise
    acquires a new session, commits and releases it.
    """
    existing = get_current_session(readonly=readonly)

    if existing:
        yield existing
        return

    async with _session_factory(readonly)() as session:
        try:
            yield session
            if not readonly:
                await session.commit()
        except Exception as e:
            logger.warning(f"Operation rollback due to: {e!r}")
            await session.rollback()
            raise
