# renderers/leaderboard_view.py
from __future__ import annotations

from typing import Sequence

from services.stats_service import ArchivedTournament, LeaderboardEntry, PointsRow


def _pad(s: str, width: int) -> str:
    s = s or ""
    if len(s) > width:
        return s[: max(0, width - 1)] + "…" if width >= 2 else s[:width]
    return s + (" " * (width - len(s)))


def _block(lines: list[str]) -> str:
    return "```text\n" + "\n".join(lines).rstrip() + "\n```"


class LeaderboardView:
    """
    Monospace tables for Discord: guild leaderboard, archive, and bracket points.
    """

    def render_leaderboard(self, rows: Sequence[LeaderboardEntry], *, title: str = "Leaderboard", name_width: int = 18) -> str:
        num_w = 4
        name_w = max(name_width, min(28, max((len(r.name) for r in rows), default=name_width)))

        lines = [f"=== {title} ==="]
        lines.append(
            f"{_pad('#', 3)} {_pad('Name', name_w)} {_pad('W', num_w)} {_pad('L', num_w)} {_pad('TP', num_w)} {_pad('Won', num_w)}"
        )
        lines.append("-" * (3 + 1 + name_w + (num_w + 1) * 4))
        for r in rows:
            lines.append(
                f"{_pad(str(r.rank), 3)} {_pad(r.name, name_w)} {_pad(str(r.wins), num_w)} {_pad(str(r.losses), num_w)} "
                f"{_pad(str(r.tournaments_played), num_w)} {_pad(str(r.tournaments_won), num_w)}"
            )
        if not rows:
            lines.append("(no results yet)")
        return _block(lines)

    def render_archive(self, rows: Sequence[ArchivedTournament], *, title: str = "Archive") -> str:
        lines = [f"=== {title} ==="]
        for t in rows:
            when = t.date.isoformat() if t.date else "?"
            lines.append(f"#{t.tournament_id} {when}  {t.name} ({t.participants} players)")
            lines.append(f"    🏆 {t.winner}   🥈 {t.runner_up}")
        if not rows:
            lines.append("(no completed tournaments)")
        return _block(lines)

    def render_points(self, rows: Sequence[PointsRow], *, title: str = "Points", name_width: int = 20) -> str:
        lines = [f"=== {title} ==="]
        for i, r in enumerate(rows, start=1):
            lines.append(f"{_pad(str(i), 3)} {_pad(r.participant.name, name_width)} {r.points}")
        if not rows:
            lines.append("(empty bracket)")
        return _block(lines)
