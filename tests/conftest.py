"""
Shared pytest fixtures for the bracket bot test suite.

InMemoryBracketStore mirrors the MySQL store's contract: one lock per
tournament around each unit of work, nothing is kept when the work raises,
and matches are stored as rows and rebuilt through match_from_row on read.
"""
from __future__ import annotations

import asyncio
from collections import defaultdict
from datetime import date
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence

import pytest

from domain.enums import TournamentStatus
from domain.models import Match, Participant, Tournament
from repositories.tournament_repo import match_from_row


def make_participants(*names: str) -> list[Participant]:
    return [Participant(participant_id=i, name=n) for i, n in enumerate(names, start=1)]


def match_row(tournament_id: int, m: Match) -> dict[str, Any]:
    def pid(p: Optional[Participant]) -> Optional[int]:
        return p.participant_id if p is not None else None

    return {
        "tournament_id": tournament_id,
        "match_id": m.match_id,
        "round_no": m.round_no,
        "position": m.position,
        "participant_a_id": pid(m.participant_a),
        "participant_b_id": pid(m.participant_b),
        "winner_id": pid(m.winner),
    }


def matches_from_rows(rows: Sequence[Mapping[str, Any]], participants: Sequence[Participant]) -> list[Match]:
    # same validation the MySQL store applies on every read
    by_id = {p.participant_id: p for p in participants}
    return sorted((match_from_row(r, by_id) for r in rows), key=lambda m: (m.round_no, m.position))


class InMemoryUnitOfWork:
    def __init__(self, tournament: Tournament, rows: list[dict[str, Any]]) -> None:
        self.tournament = tournament
        self.rows = {r["match_id"]: r for r in rows}
        self.saved: list[Match] = []

    async def load_tournament(self) -> Optional[Tournament]:
        return self.tournament

    async def load_participants(self) -> list[Participant]:
        return list(self.tournament.participants)

    async def load_matches(self) -> list[Match]:
        return matches_from_rows(list(self.rows.values()), self.tournament.participants)

    async def save_matches(self, matches: Sequence[Match]) -> None:
        for m in matches:
            self.rows[m.match_id] = match_row(self.tournament.tournament_id, m)
            self.saved.append(m)

    async def set_status(self, status: TournamentStatus) -> None:
        self.tournament = Tournament(
            tournament_id=self.tournament.tournament_id,
            name=self.tournament.name,
            date=self.tournament.date,
            status=status,
            participants=self.tournament.participants,
            guild_id=self.tournament.guild_id,
            created_by=self.tournament.created_by,
        )


class _MissingUnitOfWork(InMemoryUnitOfWork):
    def __init__(self) -> None:
        self.rows = {}
        self.saved = []

    async def load_tournament(self) -> Optional[Tournament]:
        return None


class InMemoryBracketStore:
    def __init__(self) -> None:
        self.tournaments: dict[int, Tournament] = {}
        self.rows: dict[int, list[dict[str, Any]]] = {}
        self.locks: dict[int, asyncio.Lock] = defaultdict(asyncio.Lock)
        self.units: list[InMemoryUnitOfWork] = []
        self._next_participant_id = 100

    async def create_tournament(
        self,
        *,
        name: str,
        date: date,
        participant_names: Sequence[str],
        guild_id: Optional[int],
        created_by: Optional[int],
        build_matches: Callable[[list[Participant]], list[Match]],
    ) -> Tournament:
        tournament_id = len(self.tournaments) + 1
        participants = []
        for n in participant_names:
            self._next_participant_id += 1
            participants.append(Participant(participant_id=self._next_participant_id, name=n))
        matches = build_matches(participants)

        t = Tournament(
            tournament_id=tournament_id,
            name=name,
            date=date,
            status=TournamentStatus.UPCOMING,
            participants=tuple(participants),
            guild_id=guild_id,
            created_by=created_by,
        )
        self.tournaments[tournament_id] = t
        self.rows[tournament_id] = [match_row(tournament_id, m) for m in matches]
        return t

    async def run_locked(self, tournament_id: int, work: Callable[[Any], Awaitable[Any]]) -> Any:
        async with self.locks[tournament_id]:
            t = self.tournaments.get(tournament_id)
            uow = InMemoryUnitOfWork(t, list(self.rows[tournament_id])) if t else _MissingUnitOfWork()
            self.units.append(uow)
            out = await work(uow)
            # commit only after the work returned
            if t is not None:
                self.tournaments[tournament_id] = uow.tournament
                self.rows[tournament_id] = list(uow.rows.values())
            return out

    async def get_tournament(self, *, tournament_id: int) -> Optional[Tournament]:
        return self.tournaments.get(tournament_id)

    async def list_matches(self, *, tournament: Tournament) -> list[Match]:
        return matches_from_rows(self.rows.get(tournament.tournament_id, []), tournament.participants)

    async def list_tournaments(self, *, guild_id: Optional[int], limit: int = 25) -> list[Mapping[str, Any]]:
        rows = [
            {
                "tournament_id": t.tournament_id,
                "name": t.name,
                "date": t.date,
                "status": t.status.value,
                "participant_count": t.participant_count,
            }
            for t in self.tournaments.values()
            if t.guild_id == guild_id
        ]
        rows.sort(key=lambda r: (r["date"], r["tournament_id"]), reverse=True)
        return rows[:limit]


@pytest.fixture
def four():
    return make_participants("A", "B", "C", "D")


@pytest.fixture
def eight():
    return make_participants(*[f"P{i}" for i in range(1, 9)])


@pytest.fixture
def store():
    return InMemoryBracketStore()
