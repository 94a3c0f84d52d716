"""
Database session context.

Holds the session of the enclosing transaction() in ContextVars so that
repositories called inside it share one connection, and provides the
@transactional decorator.

    @transactional
    async def reserve_credit(...):
        await api_key_repo.try_increment_usage(key_id)
        await user_repo.try_consume_credit(user_id)  # same transaction
"""

from contextvars import ContextVar
from functools import wraps
from typing import Optional, Callable, TypeVar, ParamSpec

from sqlalchemy.ext.asyncio import AsyncSession

# Current write / read session (set while inside transaction())
_write_session: ContextVar[Optional[AsyncSession]] = ContextVar(
    "db_write_session", default=None
)
_read_session: ContextVar[Optional[AsyncSession]] = ContextVar(
    "db_read_session", default=None
)


def get_current_session(readonly: bool = False) -> Optional[AsyncSession]:
    """Session of the enclosing transaction, or None outside of one."""
    if readonly:
        return _read_session.get()
    return _write_session.get()


def set_current_session(session: AsyncSession, readonly: bool = False) -> object:
    """Bind session to the context; returns the token for reset_current_session."""
    if readonly:
        return _read_session.set(session)
    return _write_session.set(session)


def reset_current_session(token: object, readonly: bool = False) -> None:
    if readonly:
        _read_session.reset(token)
    else:
        _write_session.reset(token)


def in_transaction(readonly: bool = False) -> bool:
    return get_current_session(readonly=readonly) is not None


P = ParamSpec("P")
T = TypeVar("T")


def transactional(func: Callable[P, T]) -> Callable[P, T]:
    """
    Run the decorated coroutine inside one transaction.

    Commits on success, rolls back on exception. Nested use joins the
    outer transaction.
    """

    @wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        from common.db.scoped import transaction as tx  # noqa: PLC0415

        if in_transaction():
            return await func(*args, **kwargs)
        async with tx():
            return await func(*args, **kwargs)

    return wrapper
