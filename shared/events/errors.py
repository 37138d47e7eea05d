"""Event command errors.

Every error carries a short ``user_message`` that the Discord boundary
sends back to the requester as-is.
"""

from __future__ import annotations

from typing import Optional


class EventError(Exception):
    user_message = "Something went wrong."

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail or self.user_message)
        self.detail = detail


class AlreadyExists(EventError):
    user_message = "Event already exists."


class NotFound(EventError):
    user_message = "Event does not exist."


class InvalidContext(EventError):
    user_message = "Invalid guild"


class StoreFailure(EventError):
    user_message = "Event storage is unavailable. Try again later."
