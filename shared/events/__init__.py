"""Guild-scoped event schema: keys, records and command errors."""

from shared.events.errors import (
    AlreadyExists,
    EventError,
    InvalidContext,
    NotFound,
    StoreFailure,
)
from shared.events.models import Event, EventKey, community_prefix

__all__ = [
    "AlreadyExists",
    "Event",
    "EventError",
    "EventKey",
    "InvalidContext",
    "NotFound",
    "StoreFailure",
    "community_prefix",
]
