"""
Discord Event Commands (Control-Plane Runtime)

This module defines the "days since" command surfaces: create, update,
days_since, reset, remove, list and name autocompletion.

Responsibilities:
- Derive the guild-scoped EventKey for every call
- Perform the store operation(s) each command requires
- Render the user-facing reply and its visibility

IMPORTANT CONSTRAINTS:
- This module MUST NOT register commands on import
- This module MUST NOT own a Discord client
- All Discord objects are unwrapped by the registration layer; handlers
  receive raw ids and strings only
"""

from __future__ import annotations

import asyncio
import enum
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterator, List, Optional, Union

from shared.events.errors import EventError, InvalidContext, NotFound
from shared.events.models import Event, EventKey
from shared.logging.logger import get_logger
from shared.storage.event_store import EventStore
from services.discord.logging import DiscordLogAdapter

log = get_logger("discord.commands.events", runtime="discord")

NO_EVENTS_MESSAGE = "No events found"


class Visibility(enum.Enum):
    PUBLIC = "public"
    REQUESTER_ONLY = "requester_only"


@dataclass(frozen=True)
class CommandReply:
    text: str
    visibility: Visibility = Visibility.PUBLIC

    @property
    def ephemeral(self) -> bool:
        return self.visibility is Visibility.REQUESTER_ONLY


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def render_days_since(days: int, description: str) -> str:
    unit = "day" if days == 1 else "days"
    return f"It has been {days} {unit} since {description}."


class EventCommandHandler:
    """
    Handler for the guild-scoped event commands.

    Every cmd_* coroutine either returns a CommandReply or raises an
    EventError subclass; the registration layer renders both.
    """

    def __init__(
        self,
        *,
        store: EventStore,
        logger: DiscordLogAdapter,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self._store = store
        self._logger = logger
        self._clock = clock

    # --------------------------------------------------
    # Helpers
    # --------------------------------------------------

    @staticmethod
    def _community(guild_id: Optional[Union[int, str]]) -> str:
        if guild_id is None or str(guild_id) == "":
            raise InvalidContext("command invoked outside a guild")
        return str(guild_id)

    def _key(self, guild_id: Optional[Union[int, str]], name: str) -> EventKey:
        return EventKey(community_id=self._community(guild_id), name=name)

    @contextmanager
    def _audit(
        self,
        command: str,
        *,
        guild_id: Optional[Union[int, str]],
        user_id: Optional[int],
        name: Optional[str] = None,
    ) -> Iterator[None]:
        extra = {"name": name} if name is not None else None
        try:
            yield
        except EventError as e:
            self._logger.log_command(
                command=command,
                guild_id=None if guild_id is None else str(guild_id),
                user_id=user_id,
                success=False,
                extra={**(extra or {}), "error": type(e).__name__},
            )
            raise
        self._logger.log_command(
            command=command,
            guild_id=str(guild_id),
            user_id=user_id,
            success=True,
            extra=extra,
        )

    # --------------------------------------------------
    # COMMANDS
    # --------------------------------------------------
    # Store calls run in a worker thread so a slow or locked backend
    # never stalls the gateway loop; per-key locks serialize them.

    async def cmd_create(
        self,
        *,
        user_id: Optional[int],
        guild_id: Optional[Union[int, str]],
        name: str,
        text: str,
    ) -> CommandReply:
        """
        Create a new event starting now.

        Fails with AlreadyExists without touching the stored record.
        """
        with self._audit("create", guild_id=guild_id, user_id=user_id, name=name):
            key = self._key(guild_id, name)
            event = Event(description=text, since=self._clock())
            await asyncio.to_thread(self._store.insert, key, event)
        return CommandReply("Event created.")

    async def cmd_update(
        self,
        *,
        user_id: Optional[int],
        guild_id: Optional[Union[int, str]],
        name: str,
        text: str,
    ) -> CommandReply:
        """
        Replace an event's description, keeping its timestamp.
        """
        with self._audit("update", guild_id=guild_id, user_id=user_id, name=name):
            key = self._key(guild_id, name)
            await asyncio.to_thread(
                self._store.modify,
                key,
                lambda existing: existing.with_description(text),
            )
        return CommandReply("Event updated.", Visibility.REQUESTER_ONLY)

    async def cmd_days_since(
        self,
        *,
        user_id: Optional[int],
        guild_id: Optional[Union[int, str]],
        name: str,
    ) -> CommandReply:
        with self._audit("days_since", guild_id=guild_id, user_id=user_id, name=name):
            key = self._key(guild_id, name)
            event = await asyncio.to_thread(self._store.load, key)
            days = event.days_since(self._clock())
        return CommandReply(render_days_since(days, event.description))

    async def cmd_reset(
        self,
        *,
        user_id: Optional[int],
        guild_id: Optional[Union[int, str]],
        name: str,
    ) -> CommandReply:
        """
        Restart an event's counter from now, keeping its description.
        """
        with self._audit("reset", guild_id=guild_id, user_id=user_id, name=name):
            key = self._key(guild_id, name)
            now = self._clock()
            event = await asyncio.to_thread(
                self._store.modify,
                key,
                lambda existing: existing.reset(now),
            )
        return CommandReply(f"It has now been 0 days since {event.description}.")

    async def cmd_remove(
        self,
        *,
        user_id: Optional[int],
        guild_id: Optional[Union[int, str]],
        name: str,
    ) -> CommandReply:
        with self._audit("remove", guild_id=guild_id, user_id=user_id, name=name):
            key = self._key(guild_id, name)
            await asyncio.to_thread(self._store.remove, key)
        return CommandReply("Event removed.")

    def _list_lines(self, community: str) -> List[str]:
        lines: List[str] = []
        for name in self._store.list_community(community):
            key = EventKey(community_id=community, name=name)
            try:
                event = self._store.load(key)
            except NotFound:
                log.debug(f"Event {key} vanished during listing")
                continue
            lines.append(f"{name}: {event.description}")
        return lines

    async def cmd_list(
        self,
        *,
        user_id: Optional[int],
        guild_id: Optional[Union[int, str]],
    ) -> CommandReply:
        """
        List every event of the guild as "name: description" lines.

        A storage failure aborts the whole listing. An event removed
        between enumeration and load is skipped.
        """
        with self._audit("list", guild_id=guild_id, user_id=user_id):
            community = self._community(guild_id)
            lines = await asyncio.to_thread(self._list_lines, community)

        if not lines:
            return CommandReply(NO_EVENTS_MESSAGE)
        return CommandReply("\n".join(lines))

    # --------------------------------------------------
    # AUTOCOMPLETE
    # --------------------------------------------------

    async def autocomplete_name(
        self,
        *,
        guild_id: Optional[Union[int, str]],
        partial: str,
    ) -> List[str]:
        """
        Names in the guild containing ``partial`` (case-sensitive).

        Never raises: a missing guild, an unreachable store or any
        backend fault yields no suggestions.
        """
        try:
            community = self._community(guild_id)
            names = await asyncio.to_thread(self._store.list_community, community)
        except InvalidContext:
            return []
        except Exception as e:
            log.warning(f"Autocomplete unavailable for guild {guild_id}: {e!r}")
            return []
        return [name for name in names if partial in name]
