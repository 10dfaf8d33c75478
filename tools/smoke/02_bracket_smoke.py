from __future__ import annotations

import os, sys
from datetime import date
from uuid import uuid4

HERE = os.path.dirname(__file__)
ROOT = os.path.abspath(os.path.join(HERE, "..", ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import asyncio
from config import _maybe_load_env_file, load_bracket_config, load_mysql_config
from db.pool import DbPool
from db.schema import ensure_schema
from domain.enums import TournamentStatus
from repositories.tournament_repo import TournamentRepo
from services.bracket_service import BracketService, champion

async def main() -> None:
    _maybe_load_env_file()
    mysql_cfg = load_mysql_config()
    bracket_cfg = load_bracket_config()

    run_id = os.getenv("SMOKE_RUN_ID") or f"smk_{uuid4().hex[:10]}"
    guild_id = int(os.getenv("SMOKE_GUILD_ID") or "999000111222333444")

    db = DbPool()
    await db.start(mysql_cfg)
    await ensure_schema(db.pool)

    repo = TournamentRepo(db, tx_retries=bracket_cfg.tx_retries)
    brackets = BracketService(repo, entrant_policy=bracket_cfg.entrant_policy, revision_policy=bracket_cfg.revision_policy)

    t = await brackets.create_tournament(
        name=f"SMOKE_{run_id}",
        date=date.today(),
        participant_names=[f"P{i}_{run_id}" for i in range(1, 9)],
        guild_id=guild_id,
        created_by=None,
    )
    _t, matches = await brackets.get_bracket(tournament_id=t.tournament_id)
    assert [sum(1 for m in matches if m.round_no == r) for r in (1, 2, 3)] == [4, 2, 1]

    # play it out: slot A always wins
    status = t.status
    for round_no in (1, 2, 3):
        _t, matches = await brackets.get_bracket(tournament_id=t.tournament_id)
        for m in [x for x in matches if x.round_no == round_no]:
            outcome = await brackets.report_result(
                tournament_id=t.tournament_id, match_id=m.match_id, winner_id=m.participant_a.participant_id
            )
            status = outcome.status

    _t, matches = await brackets.get_bracket(tournament_id=t.tournament_id)
    assert status == TournamentStatus.COMPLETED
    assert champion(matches) == t.participants[0]

    await db.close()
    print(f"OK: bracket smoke passed. run_id={run_id} tournament_id={t.tournament_id} champion={champion(matches).name}")

if __name__ == "__main__":
    asyncio.run(main())
