# repositories/base_repo.py
from __future__ import annotations

from typing import Any, Mapping, Sequence

import aiomysql

from db.pool import DbPool
from db.tx import get_cursor


class RowShapeError(ValueError):
    """A row read from the database is missing a required column or holds a bad value."""


def require(row: Mapping[str, Any], column: str) -> Any:
    v = row.get(column)
    if v is None:
        raise RowShapeError(f"Row is missing required column {column!r}: {dict(row)!r}")
    return v


def require_int(row: Mapping[str, Any], column: str) -> int:
    v = require(row, column)
    try:
        return int(v)
    except (TypeError, ValueError) as e:
        raise RowShapeError(f"Column {column!r} must be an integer, got {v!r}") from e


def optional_int(row: Mapping[str, Any], column: str) -> int | None:
    v = row.get(column)
    if v is None:
        return None
    try:
        return int(v)
    except (TypeError, ValueError) as e:
        raise RowShapeError(f"Column {column!r} must be an integer or NULL, got {v!r}") from e


class BaseRepo:
    """
    Small helpers so concrete repos stay readable.
    Repos hold SQL and row conversion only; bracket rules live in domain/.
    """

    def __init__(self, db: DbPool) -> None:
        self._db = db

    @property
    def pool(self) -> aiomysql.Pool:
        return self._db.pool

    async def fetch_one(self, sql: str, params: Sequence[Any] | None = None) -> Mapping[str, Any] | None:
        async with get_cursor(self.pool, dict_rows=True) as cur:
            await cur.execute(sql, params or ())
            return await cur.fetchone()

    async def fetch_all(self, sql: str, params: Sequence[Any] | None = None) -> list[Mapping[str, Any]]:
        async with get_cursor(self.pool, dict_rows=True) as cur:
            await cur.execute(sql, params or ())
            rows = await cur.fetchall()
            return list(rows or [])

