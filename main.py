# main.py
from __future__ import annotations

import asyncio
import logging
import signal
from typing import Any, Optional

import discord
from discord.ext import commands

from config import BotConfig, load_config
from db.pool import DbPool
from db.schema import ensure_schema

from repositories.tournament_repo import TournamentRepo
from repositories.stats_repo import StatsRepo

from services.bracket_service import BracketService
from services.stats_service import StatsService

from renderers.embeds import Embeds
from renderers.bracket_view import BracketView
from renderers.bracket_diagram import BracketDiagramRenderer
from renderers.leaderboard_view import LeaderboardView

from cogs.tournament_cog import setup as setup_tournament_cog

log = logging.getLogger(__name__)


def build_components(db: DbPool, cfg: BotConfig) -> dict[str, Any]:
    """
    Repositories -> services -> renderers, as keyword arguments for the
    tournament cog's setup().
    """
    bracket_service = BracketService(
        TournamentRepo(db, tx_retries=cfg.bracket.tx_retries),
        entrant_policy=cfg.bracket.entrant_policy,
        revision_policy=cfg.bracket.revision_policy,
    )
    return {
        "bracket_service": bracket_service,
        "stats_service": StatsService(StatsRepo(db)),
        "embeds": Embeds(),
        "bracket_view": BracketView(),
        "bracket_diagram": BracketDiagramRenderer(),
        "leaderboard_view": LeaderboardView(),
    }


class BracketBot(commands.Bot):
    def __init__(self, cfg: BotConfig) -> None:
        self.cfg = cfg

        super().__init__(
            command_prefix=cfg.command_prefix,
            intents=discord.Intents.default(),
            allowed_mentions=discord.AllowedMentions.none(),
        )

        self.db: Optional[DbPool] = None

    async def setup_hook(self) -> None:
        log.info("Starting setup_hook...")

        self.db = DbPool()
        await self.db.start(self.cfg.mysql)
        await ensure_schema(self.db.pool)

        components = build_components(self.db, self.cfg)
        log.info(
            "Bracket policies: entrants=%s revisions=%s tx_retries=%d",
            self.cfg.bracket.entrant_policy.value,
            self.cfg.bracket.revision_policy.value,
            self.cfg.bracket.tx_retries,
        )
        await setup_tournament_cog(self, **components)

        if self.cfg.dev_guild_id:
            guild = discord.Object(id=self.cfg.dev_guild_id)
            self.tree.copy_global_to(guild=guild)
            await self.tree.sync(guild=guild)
            log.info("Slash commands synced to DEV guild %s", self.cfg.dev_guild_id)
        else:
            await self.tree.sync()
            log.info("Slash commands synced globally")

        log.info("setup_hook complete.")

    async def on_ready(self) -> None:
        log.info("Logged in as %s (%s guilds)", self.user, len(self.guilds))

    async def close(self) -> None:
        try:
            await super().close()
        finally:
            if self.db:
                await self.db.close()
                self.db = None


async def _run_bot() -> None:
    cfg = load_config()

    logging.basicConfig(
        level=getattr(logging, cfg.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    bot = BracketBot(cfg)

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _request_stop(*_args) -> None:
        log.info("Shutdown requested")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _request_stop)
        except NotImplementedError:
            # Windows event loops have no signal handlers; Ctrl+C still raises
            pass

    async with bot:
        runner = asyncio.create_task(bot.start(cfg.token))
        stopper = asyncio.create_task(stop_event.wait())
        done, _pending = await asyncio.wait({runner, stopper}, return_when=asyncio.FIRST_COMPLETED)
        stopper.cancel()
        await bot.close()
        if runner in done:
            runner.result()


def main() -> None:
    asyncio.run(_run_bot())


if __name__ == "__main__":
    main()
