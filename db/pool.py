# db/pool.py
from __future__ import annotations

import logging
from typing import Optional

import aiomysql

from config import MySqlConfig

log = logging.getLogger(__name__)


class DbPool:
    """
    Owns the aiomysql pool for the bracket store.
    Started once in setup_hook, shared by every repository, closed on shutdown.

    Connections run in autocommit mode; anything that spans more than one
    statement goes through db.tx.transaction.
    """

    def __init__(self) -> None:
        self._pool: Optional[aiomysql.Pool] = None
        self._server_version: Optional[str] = None

    @property
    def pool(self) -> aiomysql.Pool:
        if self._pool is None:
            raise RuntimeError("DB pool is not started; await DbPool.start(cfg) first.")
        return self._pool

    @property
    def started(self) -> bool:
        return self._pool is not None

    @property
    def server_version(self) -> Optional[str]:
        return self._server_version

    async def start(self, cfg: MySqlConfig) -> None:
        if self._pool is not None:
            return

        self._pool = await aiomysql.create_pool(
            host=cfg.host,
            port=cfg.port,
            user=cfg.user,
            password=cfg.password,
            db=cfg.database,
            minsize=cfg.minsize,
            maxsize=cfg.maxsize,
            connect_timeout=cfg.connect_timeout,
            autocommit=True,
            charset="utf8mb4",
        )
        try:
            self._server_version = await self.ping()
        except aiomysql.Error:
            await self.close()
            raise
        log.info(
            "MySQL %s pool ready (%s@%s:%s/%s, %d..%d connections)",
            self._server_version, cfg.user, cfg.host, cfg.port, cfg.database, cfg.minsize, cfg.maxsize,
        )

    async def ping(self) -> str:
        """Round-trip one query; returns the server version string."""
        async with self.pool.acquire() as conn:
            async with conn.cursor() as cur:
                await cur.execute("SELECT VERSION();")
                row = await cur.fetchone()
        return str(row[0]) if row else "?"

    async def close(self) -> None:
        if self._pool is None:
            return
        self._pool.close()
        await self._pool.wait_closed()
        self._pool = None
        log.info("MySQL pool closed")
