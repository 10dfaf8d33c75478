# repositories/stats_repo.py
from __future__ import annotations

from typing import Any, Mapping

from repositories.base_repo import BaseRepo


class StatsRepo(BaseRepo):
    async def leaderboard(self, *, guild_id: int | None, limit: int = 10) -> list[Mapping[str, Any]]:
        """
        Per participant name across every tournament of a guild.
        A finals win counts as a tournament won.
        """
        return await self.fetch_all(
            """
            SELECT
              p.name AS name,
              COUNT(DISTINCT p.tournament_id) AS tournaments_played,
              COALESCE(SUM(m.winner_id = p.participant_id), 0) AS wins,
              COALESCE(SUM(m.winner_id IS NOT NULL AND m.winner_id <> p.participant_id), 0) AS losses,
              COALESCE(SUM(m.winner_id = p.participant_id AND m.round_no = fr.max_round), 0) AS tournaments_won
            FROM participant p
            JOIN tournament t ON t.tournament_id = p.tournament_id
            LEFT JOIN tournament_match m
              ON m.tournament_id = p.tournament_id
             AND (m.participant_a_id = p.participant_id OR m.participant_b_id = p.participant_id)
            LEFT JOIN (
              SELECT tournament_id, MAX(round_no) AS max_round
              FROM tournament_match
              GROUP BY tournament_id
            ) fr ON fr.tournament_id = p.tournament_id
            WHERE t.guild_id <=> %s
            GROUP BY p.name
            ORDER BY wins DESC, tournaments_won DESC, p.name ASC
            LIMIT %s;
            """,
            (guild_id, int(limit)),
        )

    async def archived(self, *, guild_id: int | None, limit: int = 25) -> list[Mapping[str, Any]]:
        """
        Completed tournaments with champion and runner-up taken from the final.
        """
        return await self.fetch_all(
            """
            SELECT
              t.tournament_id, t.name, t.date,
              (SELECT COUNT(*) FROM participant p WHERE p.tournament_id = t.tournament_id) AS participants,
              w.name AS winner,
              ru.name AS runner_up
            FROM tournament t
            LEFT JOIN tournament_match f
              ON f.tournament_id = t.tournament_id
             AND f.round_no = (SELECT MAX(round_no) FROM tournament_match WHERE tournament_id = t.tournament_id)
             AND f.position = 1
            LEFT JOIN participant w ON w.participant_id = f.winner_id
            LEFT JOIN participant ru
              ON ru.participant_id = CASE
                   WHEN f.winner_id = f.participant_a_id THEN f.participant_b_id
                   WHEN f.winner_id = f.participant_b_id THEN f.participant_a_id
                 END
            WHERE t.status = 'completed' AND t.guild_id <=> %s
            ORDER BY t.date DESC, t.tournament_id DESC
            LIMIT %s;
            """,
            (guild_id, int(limit)),
        )
