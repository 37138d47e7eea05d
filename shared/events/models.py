"""Event record and composite key schema.

An event is stored under an (community_id, name) pair. Backends that only
understand flat string keys receive ``EventKey.encode()``, which escapes
``%`` and ``:`` inside each component before joining them with ``:`` so
that every flat key decodes back to exactly one pair.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict

KEY_SEPARATOR = ":"

_SECONDS_PER_DAY = 86400

_UNESCAPES = {"%25": "%", "%3A": KEY_SEPARATOR}
_ESCAPE_RE = re.compile(r"%(?:25|3A)")


def _escape(component: str) -> str:
    return component.replace("%", "%25").replace(KEY_SEPARATOR, "%3A")


def _unescape(component: str) -> str:
    return _ESCAPE_RE.sub(lambda m: _UNESCAPES[m.group(0)], component)


def community_prefix(community_id: str) -> str:
    """Flat-key prefix shared by every event of one community."""
    return _escape(str(community_id)) + KEY_SEPARATOR


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class EventKey:
    community_id: str
    name: str

    def encode(self) -> str:
        return community_prefix(self.community_id) + _escape(self.name)

    @classmethod
    def decode(cls, flat: str) -> "EventKey":
        parts = flat.split(KEY_SEPARATOR)
        if len(parts) != 2:
            raise ValueError(f"Not an event key: {flat!r}")
        return cls(community_id=_unescape(parts[0]), name=_unescape(parts[1]))

    def __str__(self) -> str:
        return self.encode()


@dataclass(frozen=True)
class Event:
    description: str
    since: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "since", _as_utc(self.since))

    def days_since(self, now: datetime) -> int:
        """Whole days elapsed, truncated toward zero. May be negative."""
        elapsed = _as_utc(now) - self.since
        return int(elapsed.total_seconds() / _SECONDS_PER_DAY)

    def with_description(self, description: str) -> "Event":
        return Event(description=description, since=self.since)

    def reset(self, now: datetime) -> "Event":
        return Event(description=self.description, since=now)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "description": self.description,
            "since": self.since.isoformat(),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Event":
        if not isinstance(payload, dict):
            raise ValueError("Event payload must be an object")
        description = payload.get("description")
        since = payload.get("since")
        if not isinstance(description, str) or not isinstance(since, str):
            raise ValueError("Event payload requires 'description' and 'since' strings")
        return cls(description=description, since=datetime.fromisoformat(since))

    @classmethod
    def from_json(cls, raw: str) -> "Event":
        if not isinstance(raw, str):
            raise ValueError(f"Event record must be a JSON string, got {type(raw).__name__}")
        return cls.from_dict(json.loads(raw))
