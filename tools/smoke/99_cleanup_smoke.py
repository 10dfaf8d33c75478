from __future__ import annotations

import os, sys

HERE = os.path.dirname(__file__)
ROOT = os.path.abspath(os.path.join(HERE, "..", ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import asyncio
from config import _maybe_load_env_file, load_mysql_config
from db.pool import DbPool
from db.tx import get_cursor

async def main() -> None:
    _maybe_load_env_file()
    cfg = load_mysql_config()

    run_id = os.getenv("SMOKE_RUN_ID")
    if not run_id:
        raise RuntimeError("Set SMOKE_RUN_ID to the run_id you want to clean up.")

    db = DbPool()
    await db.start(cfg)

    # participants and matches go with the tournament (ON DELETE CASCADE)
    async with get_cursor(db.pool, dict_rows=False) as cur:
        await cur.execute("DELETE FROM tournament WHERE name=%s;", (f"SMOKE_{run_id}",))
        print(f"OK: {cur.rowcount} tournaments deleted")

    await db.close()
    print(f"OK: cleanup done for run_id={run_id}")

if __name__ == "__main__":
    asyncio.run(main())
