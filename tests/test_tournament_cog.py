"""
Tests for the slash command input helpers and error reporting.
"""
from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest
from discord import app_commands

from cogs.tournament_cog import TournamentCog, parse_date, split_names
from domain.errors import InvalidInputError
from renderers.embeds import Embeds
from repositories.base_repo import RowShapeError


def test_split_names_accepts_commas_semicolons_and_newlines():
    assert split_names("Alice, Bob;Carol\n Dave ,,") == ["Alice", "Bob", "Carol", "Dave"]
    assert split_names("") == []


def test_parse_date_iso():
    assert parse_date(" 2026-10-19 ") == date(2026, 10, 19)


def test_parse_date_defaults_to_today():
    assert parse_date(None) == date.today()


def test_parse_date_rejects_other_formats():
    with pytest.raises(InvalidInputError):
        parse_date("19/10/2026")


def _cog():
    return TournamentCog(
        MagicMock(),
        bracket_service=MagicMock(),
        stats_service=MagicMock(),
        embeds=Embeds(),
        bracket_view=MagicMock(),
        bracket_diagram=MagicMock(),
        leaderboard_view=MagicMock(),
    )


def _interaction(deferred: bool):
    interaction = MagicMock()
    interaction.response.is_done.return_value = deferred
    interaction.response.send_message = AsyncMock()
    interaction.followup.send = AsyncMock()
    return interaction


class TestCommandErrors:
    @pytest.mark.asyncio
    async def test_unexpected_error_after_defer_gets_error_embed(self, caplog):
        interaction = _interaction(deferred=True)
        error = app_commands.CommandInvokeError(MagicMock(), RowShapeError("winner_id=1 is not a participant"))

        await _cog().cog_app_command_error(interaction, error)

        interaction.followup.send.assert_awaited_once()
        embed = interaction.followup.send.await_args.kwargs["embed"]
        assert embed.title == "Something went wrong"
        assert "winner_id=1" in caplog.text

    @pytest.mark.asyncio
    async def test_unexpected_error_before_response(self):
        interaction = _interaction(deferred=False)

        await _cog().cog_app_command_error(interaction, app_commands.AppCommandError("boom"))

        interaction.response.send_message.assert_awaited_once()
        interaction.followup.send.assert_not_awaited()
