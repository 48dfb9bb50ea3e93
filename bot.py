import asyncio
import sys
from typing import Optional

import aiohttp
import discord
from discord import app_commands
from discord.ext import commands, tasks
from pymongo import AsyncMongoClient

import config
from config import Settings, TriggerMode, load_settings
from logger import get_logger, log_command_call, setup_logger
from services.errors import ConfigError, MatchFeedError, ScheduleShapeError
from services.match_feed import MatchFeedClient, create_session, refresh_progress
from services.notifier import Notifier
from services.progress import ProgressState
from services.reconciler import Reconciler
from services.schedule_store import ScheduleStore

log = get_logger()


class ScoutBot(commands.Bot):
    """Discord bot that reminds scouters before their schedule block."""

    def __init__(self, settings: Settings, mongo_client: Optional[AsyncMongoClient] = None):
        intents = discord.Intents.default()
        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            application_id=settings.client_id,
        )
        self.settings = settings
        self.fatal_error: Optional[BaseException] = None

        # Data and services
        if mongo_client is None:
            mongo_client = AsyncMongoClient(settings.db_uri, tz_aware=True)
        self.mongo_client = mongo_client
        collection = self.mongo_client[settings.default_db][config.SCHEDULE_COLLECTION]
        self.store = ScheduleStore(collection, settings.trigger_mode)
        self.notifier = Notifier(self, settings.channel_id)
        self.progress = ProgressState()
        self.reconciler = Reconciler(
            self.store,
            self.notifier,
            settings.trigger_mode,
            progress=self.progress if self.tracks_matches else None,
        )
        self.http_session: Optional[aiohttp.ClientSession] = None
        self.match_feed: Optional[MatchFeedClient] = None

    @property
    def tracks_matches(self) -> bool:
        return self.settings.trigger_mode is TriggerMode.MATCHES

    async def setup_hook(self):
        """Called when the bot is starting up."""
        guild = discord.Object(id=self.settings.guild_id)
        for command in (ping, next_match):
            self.tree.add_command(command, guild=guild)
        synced = await self.tree.sync(guild=guild)
        log.info("Synced %d slash commands to guild %d", len(synced), self.settings.guild_id)

        if self.tracks_matches:
            self.http_session = create_session(self.settings.tba_secret)
            self.match_feed = MatchFeedClient(self.http_session)
            self.match_feed_loop.start()
        self.reconcile_loop.start()

    async def on_ready(self):
        """Called when bot is fully logged in and ready."""
        log.info("%s has connected to Discord (%s mode)", self.user, self.settings.trigger_mode.value)

    async def next_match_text(self) -> str:
        if not self.tracks_matches:
            return "Match tracking is disabled"
        upcoming = await self.progress.next_match()
        if upcoming is None:
            return "No match data yet"
        return f"Next match is {upcoming}"

    @tasks.loop(seconds=config.RECONCILE_INTERVAL_SECONDS)
    async def reconcile_loop(self):
        try:
            await self.reconciler.run_cycle()
        except ScheduleShapeError as e:
            log.critical("Schedule data no longer matches the bot's models, shutting down: %s", e)
            self.fatal_error = e
            self.reconcile_loop.stop()
            await self.close()

    @reconcile_loop.before_loop
    async def before_reconcile(self):
        await self.wait_until_ready()

    @reconcile_loop.error
    async def reconcile_error(self, error: BaseException):
        await self.restart_after_error(self.reconcile_loop, "Reconciliation", error)

    @tasks.loop(seconds=config.MATCH_FEED_INTERVAL_SECONDS)
    async def match_feed_loop(self):
        try:
            await refresh_progress(self.match_feed, self.progress, self.settings.event_key)
        except MatchFeedError as e:
            log.warning("Match feed poll failed: %s", e)

    @match_feed_loop.before_loop
    async def before_match_feed(self):
        await self.wait_until_ready()

    @match_feed_loop.error
    async def match_feed_error(self, error: BaseException):
        await self.restart_after_error(self.match_feed_loop, "Match feed", error)

    async def restart_after_error(self, loop: tasks.Loop, name: str, error: BaseException):
        """Log a loop failure and start the loop again after one interval."""
        log.error("%s loop failed, restarting", name, exc_info=error)
        if self.is_closed():
            return
        await asyncio.sleep(loop.seconds)
        loop.restart()

    async def close(self):
        current = asyncio.current_task()
        for loop in (self.reconcile_loop, self.match_feed_loop):
            if loop.is_running() and loop.get_task() is not current:
                loop.cancel()
        if self.http_session is not None and not self.http_session.closed:
            await self.http_session.close()
        await self.mongo_client.close()
        await super().close()


@app_commands.command(name="ping", description="Check that the bot is alive")
async def ping(interaction: discord.Interaction):
    log_command_call("ping")
    await interaction.response.send_message("pong", ephemeral=True)


@app_commands.command(name="nextmatch", description="Show the next qualification match")
async def next_match(interaction: discord.Interaction):
    log_command_call("nextmatch")
    await interaction.response.send_message(await interaction.client.next_match_text())


def main():
    """Main entry point."""
    setup_logger()
    try:
        settings = load_settings()
    except ConfigError as e:
        log.critical("Configuration error: %s", e)
        print("Please check your .env file.")
        sys.exit(1)

    bot = ScoutBot(settings)

    try:
        bot.run(settings.token)
    except discord.LoginFailure:
        log.critical("Invalid Discord token! Please check TOKEN in your .env file.")
        sys.exit(1)

    if bot.fatal_error is not None:
        sys.exit(1)


if __name__ == "__main__":
    main()
