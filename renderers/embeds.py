# renderers/embeds.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import discord

from domain.enums import TournamentStatus
from domain.models import Match, Participant, Tournament
from services.bracket_service import ReportOutcome


@dataclass(frozen=True)
class EmbedTheme:
    primary: int = 0xB08D57
    success: int = 0x2ECC71
    warning: int = 0xF1C40F
    danger: int = 0xE74C3C
    neutral: int = 0x5865F2


class Embeds:
    """
    Every embed the tournament commands send, built in one place so colours
    and footer stay consistent.
    """

    def __init__(self, *, theme: EmbedTheme | None = None, footer: str = "Bracket Bot") -> None:
        self._theme = theme or EmbedTheme()
        self._footer = footer

    def base(self, *, title: str, description: str | None = None, color: int | None = None) -> discord.Embed:
        e = discord.Embed(
            title=title,
            description=description,
            color=color if color is not None else self._theme.primary,
        )
        e.set_footer(text=self._footer)
        return e

    def info(self, *, title: str, description: str | None = None) -> discord.Embed:
        return self.base(title=title, description=description, color=self._theme.neutral)

    def success(self, *, title: str, description: str | None = None) -> discord.Embed:
        return self.base(title=title, description=description, color=self._theme.success)

    def warning(self, *, title: str, description: str | None = None) -> discord.Embed:
        return self.base(title=title, description=description, color=self._theme.warning)

    def error(self, *, title: str, description: str | None = None) -> discord.Embed:
        return self.base(title=title, description=description, color=self._theme.danger)

    def status_color(self, status: TournamentStatus) -> int:
        if status == TournamentStatus.COMPLETED:
            return self._theme.success
        if status == TournamentStatus.IN_PROGRESS:
            return self._theme.warning
        return self._theme.neutral

    # -------------------------
    # Tournament embeds
    # -------------------------

    def tournament_created(self, t: Tournament) -> discord.Embed:
        return self.success(
            title="Tournament created",
            description=(
                f"**ID:** `{t.tournament_id}`\n**Name:** {t.name}\n**Date:** {t.date.isoformat()}\n"
                f"**Participants:** {t.participant_count}\n"
                f"Next: `/tournament bracket {t.tournament_id}`"
            ),
        )

    def tournament_card(
        self, t: Tournament, matches: Sequence[Match], champion: Optional[Participant] = None
    ) -> discord.Embed:
        e = self.base(title=f"Tournament {t.tournament_id}: {t.name}", color=self.status_color(t.status))
        e.add_field(name="Status", value=t.status.value, inline=True)
        e.add_field(name="Date", value=t.date.isoformat(), inline=True)
        e.add_field(name="Participants", value=str(t.participant_count), inline=True)
        decided = sum(1 for m in matches if m.is_decided)
        e.add_field(name="Matches", value=f"{decided}/{len(matches)} decided", inline=True)
        if champion is not None:
            e.add_field(name="Champion", value=champion.name, inline=True)
        return e

    def reporting_help(self, t: Tournament) -> discord.Embed:
        return self.info(
            title="Reporting results",
            description=(
                "Use the match code and the winner's name shown in the bracket.\n\n"
                f"Example:\n`/tournament report tournament_id:{t.tournament_id} match_code:R1-02 winner:<name>`"
            ),
        )

    def match_recorded(self, t: Tournament, outcome: ReportOutcome) -> discord.Embed:
        r = outcome.result
        winner = r.decided.winner.name if r.decided.winner else "?"
        lines = [f"Recorded `{r.decided.code}` winner: **{winner}**."]
        if r.advanced_to is not None:
            lines.append(f"Advances to `{r.advanced_to.code}`.")
        if r.completed:
            lines.append(f"🏆 **{winner}** wins {t.name}!")
        elif outcome.status_changed:
            lines.append(f"Tournament is now `{outcome.status.value}`.")
        if not r.changed:
            lines.append("(already recorded, nothing changed)")
        return self.success(title="Match recorded", description="\n".join(lines))
