# cogs/tournament_cog.py
from __future__ import annotations

import io
import logging
import re
from datetime import date

import discord
from discord import app_commands
from discord.ext import commands

from domain.errors import BracketError, InvalidInputError, InvalidWinnerError, MatchNotFoundError, ResultLockedError
from domain.models import Tournament
from renderers.bracket_diagram import BracketDiagramRenderer
from renderers.bracket_view import BracketView
from renderers.embeds import Embeds
from renderers.leaderboard_view import LeaderboardView
from services.bracket_service import BracketService, BracketServiceError, TournamentNotFoundError, champion
from services.stats_service import StatsService, points_table

log = logging.getLogger(__name__)

_SPLIT = re.compile(r"[,\n;]+")
_MESSAGE_LIMIT = 2000


def split_names(raw: str) -> list[str]:
    return [s.strip() for s in _SPLIT.split(raw or "") if s.strip()]


def parse_date(raw: str | None) -> date:
    s = (raw or "").strip()
    if not s:
        return date.today()
    try:
        return date.fromisoformat(s)
    except ValueError as e:
        raise InvalidInputError(f"Date must look like 2026-10-19, got {s!r}") from e


class TournamentCog(commands.Cog):
    tournament = app_commands.Group(name="tournament", description="Create and run single-elimination brackets.")

    def __init__(
        self,
        bot: commands.Bot,
        *,
        bracket_service: BracketService,
        stats_service: StatsService,
        embeds: Embeds,
        bracket_view: BracketView,
        bracket_diagram: BracketDiagramRenderer,
        leaderboard_view: LeaderboardView,
    ) -> None:
        self.bot = bot
        self.brackets = bracket_service
        self.stats = stats_service
        self.embeds = embeds
        self.bracket_view = bracket_view
        self.bracket_diagram = bracket_diagram
        self.leaderboard_view = leaderboard_view

    # -----------------------------
    # Helpers
    # -----------------------------

    async def _can_manage(self, interaction: discord.Interaction) -> bool:
        if not interaction.guild:
            return False
        if isinstance(interaction.user, discord.Member):
            return interaction.user.guild_permissions.manage_guild or interaction.user.guild_permissions.manage_channels
        return False

    async def _guild_tournament(self, interaction: discord.Interaction, tournament_id: int) -> Tournament:
        t = await self.brackets.get_tournament(tournament_id=tournament_id)
        guild_id = interaction.guild.id if interaction.guild else None
        if t.guild_id != guild_id:
            raise TournamentNotFoundError(f"Tournament not found: {tournament_id}")
        return t

    def _error_embed(self, ex: Exception) -> discord.Embed:
        if isinstance(ex, (TournamentNotFoundError, MatchNotFoundError)):
            return self.embeds.error(title="Not found", description=str(ex))
        if isinstance(ex, ResultLockedError):
            return self.embeds.warning(title="Result locked", description=str(ex))
        if isinstance(ex, InvalidWinnerError):
            return self.embeds.warning(title="Invalid winner", description=str(ex))
        if isinstance(ex, InvalidInputError):
            return self.embeds.warning(title="Invalid input", description=str(ex))
        return self.embeds.error(title="Bracket error", description=str(ex))

    async def cog_app_command_error(self, interaction: discord.Interaction, error: app_commands.AppCommandError) -> None:
        original = getattr(error, "original", error)
        log.exception(
            "Command %s failed in guild %s: %r",
            interaction.command.qualified_name if interaction.command else "?",
            interaction.guild.id if interaction.guild else None,
            original,
            exc_info=original,
        )
        e = self.embeds.error(title="Something went wrong", description="The command failed (check logs).")
        if interaction.response.is_done():
            await interaction.followup.send(embed=e, ephemeral=True)
        else:
            await interaction.response.send_message(embed=e, ephemeral=True)

    # -----------------------------
    # Commands
    # -----------------------------

    @tournament.command(name="create", description="Create a tournament and generate its bracket.")
    @app_commands.describe(
        name="Tournament name",
        participants="Participants in seed order, comma separated",
        date="Date (YYYY-MM-DD), defaults to today",
    )
    async def create(self, interaction: discord.Interaction, name: str, participants: str, date: str | None = None) -> None:
        if not await self._can_manage(interaction):
            await interaction.response.send_message("Missing permission to manage tournaments here.", ephemeral=True)
            return
        await interaction.response.defer(ephemeral=False)

        try:
            t = await self.brackets.create_tournament(
                name=name,
                date=parse_date(date),
                participant_names=split_names(participants),
                guild_id=interaction.guild.id if interaction.guild else None,
                created_by=interaction.user.id,
            )
        except (BracketError, BracketServiceError) as ex:
            await interaction.followup.send(embed=self._error_embed(ex))
            return

        log.info("Guild %s: %s created tournament %s", t.guild_id, interaction.user.id, t.tournament_id)
        await interaction.followup.send(embed=self.embeds.tournament_created(t))

    @tournament.command(name="list", description="List tournaments in this server.")
    async def list_(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=True)
        rows = await self.brackets.list_tournaments(guild_id=interaction.guild.id if interaction.guild else None)
        if not rows:
            await interaction.followup.send(embed=self.embeds.info(title="Tournaments", description="None yet."), ephemeral=True)
            return

        lines = [
            f"`{int(r['tournament_id'])}` **{r['name']}** · {r['date']} · {r['status']} · {int(r['participant_count'] or 0)} players"
            for r in rows
        ]
        await interaction.followup.send(embed=self.embeds.info(title="Tournaments", description="\n".join(lines)), ephemeral=True)

    @tournament.command(name="info", description="Show tournament details.")
    async def info(self, interaction: discord.Interaction, tournament_id: int) -> None:
        await interaction.response.defer(ephemeral=True)
        try:
            t = await self._guild_tournament(interaction, tournament_id)
            _t, matches = await self.brackets.get_bracket(tournament_id=t.tournament_id)
        except (BracketError, BracketServiceError) as ex:
            await interaction.followup.send(embed=self._error_embed(ex), ephemeral=True)
            return

        e = self.embeds.tournament_card(t, matches, champion(matches))
        await interaction.followup.send(embed=e, ephemeral=True)

    @tournament.command(name="bracket", description="Show the current bracket as text.")
    async def bracket(self, interaction: discord.Interaction, tournament_id: int) -> None:
        await interaction.response.defer(ephemeral=False)
        try:
            t = await self._guild_tournament(interaction, tournament_id)
            _t, matches = await self.brackets.get_bracket(tournament_id=t.tournament_id)
        except (BracketError, BracketServiceError) as ex:
            await interaction.followup.send(embed=self._error_embed(ex))
            return

        text = self.bracket_view.render(matches=matches, participants=t.participants, title=t.name)
        if len(text) > _MESSAGE_LIMIT:
            body = text.removeprefix("```text\n").removesuffix("\n```")
            await interaction.followup.send(file=discord.File(io.BytesIO(body.encode("utf-8")), filename=f"bracket_{t.tournament_id}.txt"))
        else:
            await interaction.followup.send(content=text)
        if matches:
            await interaction.followup.send(embed=self.embeds.reporting_help(t))

    @tournament.command(name="diagram", description="Render the bracket as an image.")
    async def diagram(self, interaction: discord.Interaction, tournament_id: int) -> None:
        await interaction.response.defer(ephemeral=False)
        try:
            t = await self._guild_tournament(interaction, tournament_id)
            _t, matches = await self.brackets.get_bracket(tournament_id=t.tournament_id)
        except (BracketError, BracketServiceError) as ex:
            await interaction.followup.send(embed=self._error_embed(ex))
            return

        png = self.bracket_diagram.render_png(matches=matches, participants=t.participants, title=t.name)
        await interaction.followup.send(file=discord.File(png, filename=f"bracket_{t.tournament_id}.png"))

    @tournament.command(name="report", description="Report a match winner and advance the bracket.")
    @app_commands.describe(
        tournament_id="Tournament ID",
        match_code="Match code shown in /tournament bracket (ex: R1-02)",
        winner="Winner's name exactly as shown in the bracket",
    )
    async def report(self, interaction: discord.Interaction, tournament_id: int, match_code: str, winner: str) -> None:
        if not await self._can_manage(interaction):
            await interaction.response.send_message("Missing permission to manage tournaments here.", ephemeral=True)
            return
        await interaction.response.defer(ephemeral=False)

        try:
            t = await self._guild_tournament(interaction, tournament_id)
            outcome = await self.brackets.report_result_by_code(
                tournament_id=t.tournament_id, match_code=match_code, winner_name=winner
            )
        except (BracketError, BracketServiceError) as ex:
            await interaction.followup.send(embed=self._error_embed(ex))
            return

        await interaction.followup.send(embed=self.embeds.match_recorded(t, outcome))

    @tournament.command(name="points", description="Show bracket points (100 per match win).")
    async def points(self, interaction: discord.Interaction, tournament_id: int) -> None:
        await interaction.response.defer(ephemeral=False)
        try:
            t = await self._guild_tournament(interaction, tournament_id)
            _t, matches = await self.brackets.get_bracket(tournament_id=t.tournament_id)
        except (BracketError, BracketServiceError) as ex:
            await interaction.followup.send(embed=self._error_embed(ex))
            return
        await interaction.followup.send(content=self.leaderboard_view.render_points(points_table(matches), title=t.name))

    @tournament.command(name="archive", description="Completed tournaments with champion and runner-up.")
    async def archive(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=False)
        rows = await self.stats.get_archive(guild_id=interaction.guild.id if interaction.guild else None)
        await interaction.followup.send(content=self.leaderboard_view.render_archive(rows))

    @tournament.command(name="leaderboard", description="Top participants across this server's tournaments.")
    async def leaderboard(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=False)
        rows = await self.stats.get_leaderboard(guild_id=interaction.guild.id if interaction.guild else None)
        await interaction.followup.send(content=self.leaderboard_view.render_leaderboard(rows))


async def setup(
    bot: commands.Bot,
    *,
    bracket_service: BracketService,
    stats_service: StatsService,
    embeds: Embeds,
    bracket_view: BracketView,
    bracket_diagram: BracketDiagramRenderer,
    leaderboard_view: LeaderboardView,
) -> None:
    await bot.add_cog(
        TournamentCog(
            bot,
            bracket_service=bracket_service,
            stats_service=stats_service,
            embeds=embeds,
            bracket_view=bracket_view,
            bracket_diagram=bracket_diagram,
            leaderboard_view=leaderboard_view,
        )
    )
