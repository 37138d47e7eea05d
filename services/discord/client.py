"""
Discord Client (Control-Plane Runtime)

This module owns the Discord connection itself.
It is intentionally minimal and lifecycle-focused.

Responsibilities:
- connect to Discord
- handle ready / resume / disconnect events
- register the event command surfaces and sync them globally
- expose a clean async run() / shutdown() contract

IMPORTANT:
- This client MUST NOT create its own event loop
- This client MUST NOT own the event store (it is injected)
"""

from __future__ import annotations

import asyncio
from typing import Optional

import discord
from discord.ext import commands

from shared.config.bot import TOKEN_ENV, BotConfig
from shared.logging.logger import get_logger
from shared.storage.event_store import EventStore

from services.discord import commands as command_surfaces
from services.discord.logging import DiscordLogAdapter

# NOTE: routed to Discord runtime log file
log = get_logger("discord.client", runtime="discord")


class DiscordClient:
    """
    Thin wrapper around discord.py Bot.

    This class provides:
    - async run() entrypoint
    - async shutdown()
    - lifecycle event logging
    - command surface wiring
    """

    def __init__(self, *, config: BotConfig, store: EventStore):
        if not config.token:
            raise RuntimeError(f"{TOKEN_ENV} not found in environment")

        log.info(f"Discord bot token present: {bool(config.token)}")

        self._token: str = config.token
        self._config = config
        self._store = store
        self._bot: Optional[commands.Bot] = None
        self._ready_event = asyncio.Event()

        self.logger = DiscordLogAdapter()

    # --------------------------------------------------

    def _build_bot(self) -> commands.Bot:
        """
        Construct the discord.py Bot instance.

        NOTE:
        - Commands are registered here
        - Only non-privileged intents are requested
        """

        intents = discord.Intents.default()
        intents.message_content = False  # slash-command focused

        bot = commands.Bot(
            command_prefix=commands.when_mentioned,
            intents=intents,
        )

        # --------------------------------------------------
        # Command Registration
        # --------------------------------------------------

        command_surfaces.setup(
            bot,
            store=self._store,
            logger=self.logger,
        )

        # --------------------------------------------------
        # Lifecycle Events
        # --------------------------------------------------

        @bot.event
        async def on_ready():
            log.info(
                f"Discord connected as {bot.user} "
                f"(id={bot.user.id}) "
                f"guilds={len(bot.guilds)}"
            )
            self.logger.log_startup()

            if self._config.commands.sync_on_ready:
                try:
                    synced = await bot.tree.sync()
                    log.info(f"Discord command tree synced ({len(synced)} commands)")
                except discord.DiscordException as e:
                    log.error(f"Failed to sync Discord commands: {e}")

            self._ready_event.set()

        @bot.event
        async def on_resumed():
            log.info("Discord connection resumed")

        @bot.event
        async def on_disconnect():
            log.warning("Discord connection lost")

        @bot.event
        async def on_guild_join(guild: discord.Guild):
            log.info(
                f"Joined guild: {guild.name} "
                f"(id={guild.id}, members={guild.member_count})"
            )

        @bot.event
        async def on_guild_remove(guild: discord.Guild):
            log.info(
                f"Removed from guild: {guild.name} "
                f"(id={guild.id})"
            )

        return bot

    # --------------------------------------------------

    async def run(self):
        """
        Start the Discord client and block until shutdown.
        """
        if self._bot is not None:
            raise RuntimeError("Discord client already running")

        log.info("Initializing Discord client")

        self._bot = self._build_bot()

        try:
            await self._bot.start(self._token)
        except asyncio.CancelledError:
            log.info("Discord client task cancelled")
            raise
        except Exception as e:
            log.error(f"Discord client crashed: {e}")
            raise
        finally:
            log.info("Discord client stopped")

    # --------------------------------------------------

    async def shutdown(self):
        """
        Gracefully close the Discord connection.
        """
        if not self._bot:
            return

        log.info("Closing Discord connection")

        try:
            await self._bot.close()
        except Exception as e:
            log.warning(f"Discord close error ignored: {e}")

        self.logger.log_shutdown()

        self._bot = None
        self._ready_event.clear()

    # --------------------------------------------------

    @property
    def bot(self) -> Optional[commands.Bot]:
        """
        Expose bot instance (read-only) for lifecycle hooks.
        """
        return self._bot

    @property
    def ready(self) -> bool:
        return self._ready_event.is_set()
