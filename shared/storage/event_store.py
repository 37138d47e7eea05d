"""Guild-scoped event store.

Maps an EventKey to an Event record on top of a flat key-value backend.

Concurrency:
- Every operation on a key runs under that key's lock
- Operations on different keys never wait on each other here
  (the backend may still serialize its own I/O)
- insert() and modify() make check-then-act sequences atomic per key

Errors:
- Missing keys surface as NotFound / AlreadyExists
- Any backend or payload failure surfaces as StoreFailure
"""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional, Protocol

from shared.config.bot import BotConfig
from shared.events.errors import AlreadyExists, NotFound, StoreFailure
from shared.events.models import Event, EventKey, community_prefix
from shared.logging.logger import get_logger
from shared.storage.backends import JsonFileBackend, SqliteBackend
from shared.storage.paths import resolve_storage_path

log = get_logger("storage.event_store")

_BACKEND_ERRORS = (sqlite3.Error, OSError, ValueError)


class KeyValueBackend(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def put(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> bool: ...

    def keys(self) -> List[str]: ...

    def close(self) -> None: ...


class EventStore:
    def __init__(self, backend: KeyValueBackend) -> None:
        self._backend = backend
        self._guard = threading.Lock()
        # flat key -> [lock, holders + waiters]; dropped when the count hits zero
        self._key_locks: Dict[str, List] = {}

    # ------------------------------------------------------------------
    # Locking
    # ------------------------------------------------------------------

    @contextmanager
    def _locked(self, flat: str) -> Iterator[None]:
        with self._guard:
            entry = self._key_locks.get(flat)
            if entry is None:
                entry = self._key_locks[flat] = [threading.Lock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._key_locks[flat]

    @property
    def active_locks(self) -> int:
        """Number of keys currently locked or waited on."""
        with self._guard:
            return len(self._key_locks)

    # ------------------------------------------------------------------
    # Backend access (caller holds the key lock)
    # ------------------------------------------------------------------

    def _read(self, flat: str) -> Optional[Event]:
        try:
            raw = self._backend.get(flat)
            return Event.from_json(raw) if raw is not None else None
        except _BACKEND_ERRORS as e:
            log.error(f"Failed to load event {flat!r}: {e}")
            raise StoreFailure(f"load {flat!r}: {e}") from e

    def _write(self, flat: str, event: Event) -> None:
        try:
            self._backend.put(flat, event.to_json())
        except _BACKEND_ERRORS as e:
            log.error(f"Failed to save event {flat!r}: {e}")
            raise StoreFailure(f"save {flat!r}: {e}") from e

    def _delete(self, flat: str) -> bool:
        try:
            return self._backend.delete(flat)
        except _BACKEND_ERRORS as e:
            log.error(f"Failed to remove event {flat!r}: {e}")
            raise StoreFailure(f"remove {flat!r}: {e}") from e

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def load(self, key: EventKey) -> Event:
        flat = key.encode()
        with self._locked(flat):
            event = self._read(flat)
        if event is None:
            raise NotFound(str(key))
        return event

    def save(self, key: EventKey, event: Event) -> None:
        """Unconditional upsert."""
        flat = key.encode()
        with self._locked(flat):
            self._write(flat, event)

    def remove(self, key: EventKey) -> None:
        flat = key.encode()
        with self._locked(flat):
            removed = self._delete(flat)
        if not removed:
            raise NotFound(str(key))

    def insert(self, key: EventKey, event: Event) -> None:
        """Save only if the key is absent."""
        flat = key.encode()
        with self._locked(flat):
            if self._read(flat) is not None:
                raise AlreadyExists(str(key))
            self._write(flat, event)

    def modify(self, key: EventKey, change: Callable[[Event], Event]) -> Event:
        """Replace an existing record with change(existing) and return it."""
        flat = key.encode()
        with self._locked(flat):
            existing = self._read(flat)
            if existing is None:
                raise NotFound(str(key))
            updated = change(existing)
            self._write(flat, updated)
        return updated

    def list_keys(self) -> List[EventKey]:
        """Every stored key, in backend order."""
        try:
            flat_keys = self._backend.keys()
        except _BACKEND_ERRORS as e:
            log.error(f"Failed to enumerate events: {e}")
            raise StoreFailure(f"list: {e}") from e

        keys: List[EventKey] = []
        for flat in flat_keys:
            try:
                keys.append(EventKey.decode(flat))
            except ValueError:
                log.warning(f"Skipping unrecognized store key {flat!r}")
        return keys

    def list_community(self, community_id: str) -> List[str]:
        """Names of one community's events, in backend order."""
        prefix = community_prefix(community_id)
        return [
            key.name
            for key in self.list_keys()
            if key.encode().startswith(prefix)
        ]

    def close(self) -> None:
        try:
            self._backend.close()
        except _BACKEND_ERRORS as e:
            log.warning(f"Event backend close error ignored: {e}")


def build_store(config: BotConfig) -> EventStore:
    backend_name = config.storage.backend
    path = resolve_storage_path(config.storage.path, backend_name)

    if backend_name == "json":
        backend: KeyValueBackend = JsonFileBackend(path)
    else:
        backend = SqliteBackend(path)

    log.info(f"Event store initialized (backend={backend_name}, path={path})")
    return EventStore(backend)
