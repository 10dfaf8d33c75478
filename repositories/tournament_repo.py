# repositories/tournament_repo.py
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Awaitable, Callable, Mapping, Sequence, TypeVar

import aiomysql

from db.pool import DbPool
from db.tx import run_with_retry, transaction
from domain.enums import TournamentStatus
from domain.models import Match, Participant, Tournament
from repositories.base_repo import BaseRepo, RowShapeError, optional_int, require, require_int

log = logging.getLogger(__name__)

T = TypeVar("T")


# -------------------------
# Row -> domain
# -------------------------

def participant_from_row(row: Mapping[str, Any]) -> Participant:
    return Participant(participant_id=require_int(row, "participant_id"), name=str(require(row, "name")))


def tournament_from_row(row: Mapping[str, Any], participants: Sequence[Participant] = ()) -> Tournament:
    raw_status = str(require(row, "status"))
    try:
        status = TournamentStatus(raw_status)
    except ValueError as e:
        raise RowShapeError(f"Unknown tournament status {raw_status!r}") from e

    d = require(row, "date")
    if not isinstance(d, date):
        try:
            d = date.fromisoformat(str(d))
        except ValueError as e:
            raise RowShapeError(f"Column 'date' is not a date: {d!r}") from e

    return Tournament(
        tournament_id=require_int(row, "tournament_id"),
        name=str(require(row, "name")),
        date=d,
        status=status,
        participants=tuple(participants),
        guild_id=optional_int(row, "guild_id"),
        created_by=optional_int(row, "created_by"),
    )


def match_from_row(row: Mapping[str, Any], participants_by_id: Mapping[int, Participant]) -> Match:
    def ref(column: str) -> Participant | None:
        pid = optional_int(row, column)
        if pid is None:
            return None
        p = participants_by_id.get(pid)
        if p is None:
            raise RowShapeError(f"{column}={pid} does not belong to tournament {row.get('tournament_id')}")
        return p

    a = ref("participant_a_id")
    b = ref("participant_b_id")
    w = ref("winner_id")
    if w is not None and w not in (a, b):
        raise RowShapeError(f"winner_id={w.participant_id} is not a participant of match {row.get('match_id')}")

    return Match(
        match_id=require_int(row, "match_id"),
        round_no=require_int(row, "round_no"),
        position=require_int(row, "position"),
        participant_a=a,
        participant_b=b,
        winner=w,
    )


def _pid(p: Participant | None) -> int | None:
    return p.participant_id if p is not None else None


# -------------------------
# Cursor-level statements (run inside a caller's transaction)
# -------------------------

async def _select_participants(cur: aiomysql.Cursor, tournament_id: int) -> list[Participant]:
    await cur.execute(
        """
        SELECT participant_id, name
        FROM participant
        WHERE tournament_id=%s
        ORDER BY seed, participant_id;
        """,
        (tournament_id,),
    )
    return [participant_from_row(r) for r in (await cur.fetchall() or [])]


async def _select_matches(cur: aiomysql.Cursor, tournament_id: int, participants: Sequence[Participant]) -> list[Match]:
    by_id = {p.participant_id: p for p in participants}
    await cur.execute(
        """
        SELECT tournament_id, match_id, round_no, position, participant_a_id, participant_b_id, winner_id
        FROM tournament_match
        WHERE tournament_id=%s
        ORDER BY round_no, position;
        """,
        (tournament_id,),
    )
    return [match_from_row(r, by_id) for r in (await cur.fetchall() or [])]


class MySqlUnitOfWork:
    """
    One locked read/compute/write cycle on a single tournament.
    The tournament row is held FOR UPDATE until the surrounding transaction ends,
    so concurrent reports on the same tournament run one after another.
    """

    def __init__(self, cur: aiomysql.Cursor, tournament_id: int) -> None:
        self._cur = cur
        self._tournament_id = int(tournament_id)
        self._participants: list[Participant] | None = None

    async def load_tournament(self) -> Tournament | None:
        await self._cur.execute(
            "SELECT * FROM tournament WHERE tournament_id=%s FOR UPDATE;",
            (self._tournament_id,),
        )
        row = await self._cur.fetchone()
        if not row:
            return None
        return tournament_from_row(row, await self.load_participants())

    async def load_participants(self) -> list[Participant]:
        if self._participants is None:
            self._participants = await _select_participants(self._cur, self._tournament_id)
        return list(self._participants)

    async def load_matches(self) -> list[Match]:
        return await _select_matches(self._cur, self._tournament_id, await self.load_participants())

    async def save_matches(self, matches: Sequence[Match]) -> None:
        for m in matches:
            await self._cur.execute(
                """
                UPDATE tournament_match
                SET participant_a_id=%s, participant_b_id=%s, winner_id=%s, updated_at=NOW(6)
                WHERE tournament_id=%s AND match_id=%s;
                """,
                (_pid(m.participant_a), _pid(m.participant_b), _pid(m.winner), self._tournament_id, m.match_id),
            )

    async def set_status(self, status: TournamentStatus) -> None:
        await self._cur.execute(
            "UPDATE tournament SET status=%s, updated_at=NOW(6) WHERE tournament_id=%s;",
            (TournamentStatus(status).value, self._tournament_id),
        )


class TournamentRepo(BaseRepo):
    """
    MySQL side of the bracket store: tournaments, participants (seed order) and matches.
    """

    def __init__(self, db: DbPool, *, tx_retries: int = 3) -> None:
        super().__init__(db)
        self._tx_retries = int(tx_retries)

    # -------------------------
    # Writes
    # -------------------------

    async def create_tournament(
        self,
        *,
        name: str,
        date: date,
        participant_names: Sequence[str],
        guild_id: int | None,
        created_by: int | None,
        build_matches: Callable[[list[Participant]], list[Match]],
    ) -> Tournament:
        """
        Inserts the tournament, its participants (in seed order) and the
        matches build_matches lays out for them, in one transaction.
        """
        async def _once() -> Tournament:
            async with transaction(self.pool, dict_rows=True) as (_conn, cur):
                await cur.execute(
                    """
                    INSERT INTO tournament (guild_id, created_by, name, date, status)
                    VALUES (%s, %s, %s, %s, %s);
                    """,
                    (guild_id, created_by, name, date, TournamentStatus.UPCOMING.value),
                )
                tournament_id = int(cur.lastrowid)

                participants: list[Participant] = []
                for seed, pname in enumerate(participant_names, start=1):
                    await cur.execute(
                        "INSERT INTO participant (tournament_id, seed, name) VALUES (%s, %s, %s);",
                        (tournament_id, seed, pname),
                    )
                    participants.append(Participant(participant_id=int(cur.lastrowid), name=pname))

                matches = build_matches(participants)
                if matches:
                    await cur.executemany(
                        """
                        INSERT INTO tournament_match
                          (tournament_id, match_id, round_no, position, participant_a_id, participant_b_id, winner_id)
                        VALUES (%s, %s, %s, %s, %s, %s, %s);
                        """,
                        [
                            (
                                tournament_id,
                                m.match_id,
                                m.round_no,
                                m.position,
                                _pid(m.participant_a),
                                _pid(m.participant_b),
                                _pid(m.winner),
                            )
                            for m in matches
                        ],
                    )
                log.debug("Inserted tournament %s: %d participants, %d matches", tournament_id, len(participants), len(matches))

            return Tournament(
                tournament_id=tournament_id,
                name=name,
                date=date,
                status=TournamentStatus.UPCOMING,
                participants=tuple(participants),
                guild_id=guild_id,
                created_by=created_by,
            )

        return await run_with_retry(_once, attempts=self._tx_retries)

    async def run_locked(self, tournament_id: int, work: Callable[[MySqlUnitOfWork], Awaitable[T]]) -> T:
        async def _once() -> T:
            async with transaction(self.pool, dict_rows=True) as (_conn, cur):
                return await work(MySqlUnitOfWork(cur, tournament_id))

        return await run_with_retry(_once, attempts=self._tx_retries)

    # -------------------------
    # Reads
    # -------------------------

    async def get_tournament(self, *, tournament_id: int) -> Tournament | None:
        row = await self.fetch_one("SELECT * FROM tournament WHERE tournament_id=%s;", (tournament_id,))
        if not row:
            return None
        rows = await self.fetch_all(
            "SELECT participant_id, name FROM participant WHERE tournament_id=%s ORDER BY seed, participant_id;",
            (tournament_id,),
        )
        return tournament_from_row(row, [participant_from_row(r) for r in rows])

    async def list_matches(self, *, tournament: Tournament) -> list[Match]:
        by_id = {p.participant_id: p for p in tournament.participants}
        rows = await self.fetch_all(
            """
            SELECT tournament_id, match_id, round_no, position, participant_a_id, participant_b_id, winner_id
            FROM tournament_match
            WHERE tournament_id=%s
            ORDER BY round_no, position;
            """,
            (tournament.tournament_id,),
        )
        return [match_from_row(r, by_id) for r in rows]

    async def list_tournaments(self, *, guild_id: int | None, limit: int = 25) -> list[Mapping[str, Any]]:
        return await self.fetch_all(
            """
            SELECT t.tournament_id, t.name, t.date, t.status,
              (SELECT COUNT(*) FROM participant p WHERE p.tournament_id = t.tournament_id) AS participant_count
            FROM tournament t
            WHERE t.guild_id <=> %s
            ORDER BY t.date DESC, t.tournament_id DESC
            LIMIT %s;
            """,
            (guild_id, int(limit)),
        )
