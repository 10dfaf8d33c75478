# services/stats_service.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping, Optional, Sequence

from domain.models import Match, Participant
from repositories.stats_repo import StatsRepo

POINTS_PER_WIN = 100


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    name: str
    wins: int
    losses: int
    tournaments_played: int
    tournaments_won: int


@dataclass(frozen=True)
class ArchivedTournament:
    tournament_id: int
    name: str
    date: Optional[date]
    participants: int
    winner: str
    runner_up: str


@dataclass(frozen=True)
class PointsRow:
    participant: Participant
    points: int


def _int(v: Any) -> int:
    try:
        return int(v or 0)
    except (TypeError, ValueError):
        return 0


def points_table(matches: Sequence[Match]) -> list[PointsRow]:
    """
    Everyone who appears in the bracket, POINTS_PER_WIN per match won,
    highest first. Ties keep first-appearance order.
    """
    points: dict[int, int] = {}
    seen: dict[int, Participant] = {}
    for m in sorted(matches, key=lambda x: (x.round_no, x.position)):
        for p in (m.participant_a, m.participant_b):
            if p is not None and p.participant_id not in seen:
                seen[p.participant_id] = p
                points[p.participant_id] = 0
        if m.winner is not None:
            points[m.winner.participant_id] = points.get(m.winner.participant_id, 0) + POINTS_PER_WIN
            seen.setdefault(m.winner.participant_id, m.winner)

    rows = [PointsRow(participant=seen[pid], points=pts) for pid, pts in points.items()]
    rows.sort(key=lambda r: -r.points)
    return rows


class StatsService:
    """
    Read-only rollups: guild leaderboard and the archive of finished tournaments.
    This service does NOT format output; renderers do that.
    """

    def __init__(self, stats_repo: StatsRepo) -> None:
        self._stats_repo = stats_repo

    async def get_leaderboard(self, *, guild_id: Optional[int], limit: int = 10) -> list[LeaderboardEntry]:
        rows = await self._stats_repo.leaderboard(guild_id=guild_id, limit=limit)
        return [
            LeaderboardEntry(
                rank=i,
                name=str(r.get("name") or "?"),
                wins=_int(r.get("wins")),
                losses=_int(r.get("losses")),
                tournaments_played=_int(r.get("tournaments_played")),
                tournaments_won=_int(r.get("tournaments_won")),
            )
            for i, r in enumerate(rows, start=1)
        ]

    async def get_archive(self, *, guild_id: Optional[int], limit: int = 25) -> list[ArchivedTournament]:
        rows = await self._stats_repo.archived(guild_id=guild_id, limit=limit)
        return [self._archived_from_row(r) for r in rows]

    @staticmethod
    def _archived_from_row(r: Mapping[str, Any]) -> ArchivedTournament:
        d = r.get("date")
        return ArchivedTournament(
            tournament_id=_int(r.get("tournament_id")),
            name=str(r.get("name") or ""),
            date=d if isinstance(d, date) else None,
            participants=_int(r.get("participants")),
            winner=str(r.get("winner") or "Unknown"),
            runner_up=str(r.get("runner_up") or "Unknown"),
        )
