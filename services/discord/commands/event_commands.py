"""
Discord Event Slash Command Registration (Control-Plane Runtime)

Thin registration layer that exposes the event commands to Discord and
delegates ALL logic to EventCommandHandler.

Responsibilities:
- Register /create, /update, /days_since, /reset, /remove, /list
- Bind name autocompletion on update / days_since / reset / remove
- Render handler replies and errors at the Discord boundary

IMPORTANT DESIGN RULES:
- NO business logic
- NO persistence
- NO Discord client creation
"""

from __future__ import annotations

from typing import Awaitable, List, Optional

import discord
from discord import app_commands
from discord.ext import commands

from shared.events.errors import EventError
from shared.logging.logger import get_logger
from services.discord.commands.events import (
    CommandReply,
    EventCommandHandler,
    Visibility,
)

# NOTE: routed to Discord runtime log file
log = get_logger("discord.commands.events.register", runtime="discord")

# Discord platform limits
MAX_MESSAGE_LENGTH = 2000
MAX_AUTOCOMPLETE_CHOICES = 25
MAX_CHOICE_LENGTH = 100

FAILURE_MESSAGE = "❌ Command failed. Check logs."

EVENT_COMMAND_NAMES = ("create", "update", "days_since", "reset", "remove", "list")


# ==================================================
# Boundary helpers
# ==================================================

def split_message(text: str, limit: int = MAX_MESSAGE_LENGTH) -> List[str]:
    """
    Split text into Discord-sized chunks, preferring line boundaries.

    Joining the chunks with newlines restores the text, blank lines
    included. Empty chunks are dropped since Discord rejects them.
    """
    if len(text) <= limit:
        return [text]

    chunks: List[str] = []
    current: Optional[str] = None
    for line in text.split("\n"):
        while len(line) > limit:
            if current is not None:
                chunks.append(current)
                current = None
            chunks.append(line[:limit])
            line = line[limit:]
        candidate = line if current is None else f"{current}\n{line}"
        if len(candidate) > limit:
            chunks.append(current)
            current = line
        else:
            current = candidate
    if current is not None:
        chunks.append(current)
    return [chunk for chunk in chunks if chunk]


async def send_reply(interaction: discord.Interaction, reply: CommandReply) -> None:
    chunks = split_message(reply.text)
    await interaction.response.send_message(chunks[0], ephemeral=reply.ephemeral)
    for chunk in chunks[1:]:
        await interaction.followup.send(chunk, ephemeral=reply.ephemeral)


async def respond(
    interaction: discord.Interaction,
    command: str,
    pending: Awaitable[CommandReply],
) -> None:
    """
    Await a handler call and deliver its reply or error to the requester.
    """
    try:
        reply = await pending
    except EventError as e:
        reply = CommandReply(e.user_message, Visibility.REQUESTER_ONLY)
    except Exception:
        log.exception(f"/{command} failed unexpectedly")
        reply = CommandReply(FAILURE_MESSAGE, Visibility.REQUESTER_ONLY)

    await send_reply(interaction, reply)


async def name_choices(
    handler: EventCommandHandler,
    guild_id,
    current: str,
) -> List[app_commands.Choice[str]]:
    """Autocomplete choices for an event name, capped to Discord's limits."""
    names = await handler.autocomplete_name(guild_id=guild_id, partial=current)
    return [
        app_commands.Choice(name=name[:MAX_CHOICE_LENGTH], value=name)
        for name in names[:MAX_AUTOCOMPLETE_CHOICES]
    ]


# ==================================================
# Registration Entry Point
# ==================================================

def setup(
    bot: commands.Bot,
    *,
    handler: EventCommandHandler,
):
    """
    Register the event slash commands.

    This function is called explicitly by the Discord client
    during startup.
    """

    async def name_autocomplete(
        interaction: discord.Interaction,
        current: str,
    ) -> List[app_commands.Choice[str]]:
        return await name_choices(handler, interaction.guild_id, current)

    # --------------------------------------------------
    # /create
    # --------------------------------------------------

    @app_commands.command(
        name="create",
        description="Create a new event.",
    )
    @app_commands.describe(
        name="Name of the event.",
        text='Text for the event (e.g. "It has been x days since [text]")',
    )
    async def create(
        interaction: discord.Interaction,
        name: str,
        text: str,
    ):
        await respond(
            interaction,
            "create",
            handler.cmd_create(
                user_id=interaction.user.id,
                guild_id=interaction.guild_id,
                name=name,
                text=text,
            ),
        )

    # --------------------------------------------------
    # /update
    # --------------------------------------------------

    @app_commands.command(
        name="update",
        description="Update the text for an existing event.",
    )
    @app_commands.describe(
        name="Name of the event.",
        text='Text for the event (e.g. "It has been x days since [text]")',
    )
    @app_commands.autocomplete(name=name_autocomplete)
    async def update(
        interaction: discord.Interaction,
        name: str,
        text: str,
    ):
        await respond(
            interaction,
            "update",
            handler.cmd_update(
                user_id=interaction.user.id,
                guild_id=interaction.guild_id,
                name=name,
                text=text,
            ),
        )

    # --------------------------------------------------
    # /days_since
    # --------------------------------------------------

    @app_commands.command(
        name="days_since",
        description="Show the number of days since the last event occurrence.",
    )
    @app_commands.describe(name="Name of the event.")
    @app_commands.autocomplete(name=name_autocomplete)
    async def days_since(
        interaction: discord.Interaction,
        name: str,
    ):
        await respond(
            interaction,
            "days_since",
            handler.cmd_days_since(
                user_id=interaction.user.id,
                guild_id=interaction.guild_id,
                name=name,
            ),
        )

    # --------------------------------------------------
    # /reset
    # --------------------------------------------------

    @app_commands.command(
        name="reset",
        description="Reset the time since the last event occurrence.",
    )
    @app_commands.describe(name="Name of the event.")
    @app_commands.autocomplete(name=name_autocomplete)
    async def reset(
        interaction: discord.Interaction,
        name: str,
    ):
        await respond(
            interaction,
            "reset",
            handler.cmd_reset(
                user_id=interaction.user.id,
                guild_id=interaction.guild_id,
                name=name,
            ),
        )

    # --------------------------------------------------
    # /remove
    # --------------------------------------------------

    @app_commands.command(
        name="remove",
        description="Remove an existing event.",
    )
    @app_commands.describe(name="Name of the event.")
    @app_commands.autocomplete(name=name_autocomplete)
    async def remove(
        interaction: discord.Interaction,
        name: str,
    ):
        await respond(
            interaction,
            "remove",
            handler.cmd_remove(
                user_id=interaction.user.id,
                guild_id=interaction.guild_id,
                name=name,
            ),
        )

    # --------------------------------------------------
    # /list
    # --------------------------------------------------

    @app_commands.command(
        name="list",
        description="List all existing events.",
    )
    async def list_events(
        interaction: discord.Interaction,
    ):
        await respond(
            interaction,
            "list",
            handler.cmd_list(
                user_id=interaction.user.id,
                guild_id=interaction.guild_id,
            ),
        )

    # --------------------------------------------------
    # Register Commands
    # --------------------------------------------------

    for command in (create, update, days_since, reset, remove, list_events):
        bot.tree.add_command(command)

    log.info("Discord event slash commands registered")
