from __future__ import annotations

import os, sys

HERE = os.path.dirname(__file__)
ROOT = os.path.abspath(os.path.join(HERE, "..", ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import asyncio
from config import _maybe_load_env_file, load_mysql_config
from db.pool import DbPool
from db.schema import ensure_schema

async def main() -> None:
    _maybe_load_env_file()
    cfg = load_mysql_config()

    db = DbPool()
    await db.start(cfg)
    version = await db.ping()
    await ensure_schema(db.pool)
    await db.close()

    print(f"OK: MySQL {version} reachable, schema in place.")

if __name__ == "__main__":
    asyncio.run(main())
