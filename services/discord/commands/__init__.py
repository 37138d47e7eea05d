"""
Discord Command Package (Control-Plane Runtime)

This package centralizes registration for all Discord command surfaces.

Command categories:
- events → guild-scoped "days since" event commands

IMPORTANT DESIGN RULES:
- No command registration on import
- No Discord client ownership
- Explicit setup() calls only
"""

from __future__ import annotations

from discord.ext import commands

from shared.logging.logger import get_logger
from shared.storage.event_store import EventStore

from services.discord.commands import event_commands
from services.discord.commands.events import EventCommandHandler
from services.discord.logging import DiscordLogAdapter

log = get_logger("discord.commands", runtime="discord")


def setup(
    bot: commands.Bot,
    *,
    store: EventStore,
    logger: DiscordLogAdapter,
) -> EventCommandHandler:
    """
    Register all Discord command surfaces.

    This function is called exactly once by the Discord client
    during startup.
    """

    handler = EventCommandHandler(store=store, logger=logger)

    # --------------------------------------------------
    # Event commands
    # --------------------------------------------------
    event_commands.setup(bot, handler=handler)

    log.info("Discord command surfaces initialized")
    return handler
