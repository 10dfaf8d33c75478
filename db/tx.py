# db/tx.py
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Tuple, TypeVar

import aiomysql

log = logging.getLogger(__name__)

T = TypeVar("T")

# ER_LOCK_DEADLOCK, ER_LOCK_WAIT_TIMEOUT
RETRYABLE_ERRNOS = frozenset({1213, 1205})


@asynccontextmanager
async def get_cursor(
    pool: aiomysql.Pool, *, dict_rows: bool = True
) -> AsyncIterator[aiomysql.Cursor]:
    """
    Cursor on an autocommit connection, for single read/write statements.
    """
    cursor_cls = aiomysql.DictCursor if dict_rows else aiomysql.Cursor
    async with pool.acquire() as conn:
        async with conn.cursor(cursor_cls) as cur:
            yield cur


@asynccontextmanager
async def transaction(
    pool: aiomysql.Pool, *, dict_rows: bool = True
) -> AsyncIterator[Tuple[aiomysql.Connection, aiomysql.Cursor]]:
    """
    Runs statements inside a transaction.
    - Commits on success
    - Rolls back on exception

    Usage:
        async with transaction(pool) as (conn, cur):
            await cur.execute(...)
    """
    cursor_cls = aiomysql.DictCursor if dict_rows else aiomysql.Cursor

    async with pool.acquire() as conn:
        await conn.begin()
        try:
            async with conn.cursor(cursor_cls) as cur:
                yield conn, cur
            await conn.commit()
        except BaseException:
            await conn.rollback()
            raise


def is_retryable(exc: BaseException) -> bool:
    if not isinstance(exc, aiomysql.OperationalError):
        return False
    errno = exc.args[0] if exc.args else None
    return errno in RETRYABLE_ERRNOS


async def run_with_retry(
    fn: Callable[[], Awaitable[T]],
    *,
    attempts: int = 3,
    base_delay: float = 0.05,
) -> T:
    """
    Re-run a whole unit of work when MySQL reports a deadlock or lock wait
    timeout. fn must open its own transaction so each attempt starts clean.
    """
    attempts = max(1, int(attempts))
    for attempt in range(1, attempts + 1):
        try:
            return await fn()
        except aiomysql.OperationalError as e:
            if not is_retryable(e) or attempt == attempts:
                raise
            delay = base_delay * (2 ** (attempt - 1))
            log.warning("Transient write conflict (%s), retry %d/%d in %.2fs", e.args[0], attempt, attempts - 1, delay)
            await asyncio.sleep(delay)
    raise RuntimeError("unreachable")
