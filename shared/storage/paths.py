"""
Shared storage path utilities.

This module defines canonical filesystem locations for the
persisted event store and its backups.

Design goals:
- Single source of truth for storage paths
- OS-safe, repo-relative resolution
- Directories are created on demand, never on import
"""

from __future__ import annotations

from pathlib import Path

# ----------------------------------------------------------------------
# BASE DIRECTORIES
# ----------------------------------------------------------------------

# Repo root is assumed to be the current working directory
# when DaysSince is launched (consistent with core.discord_app)
BASE_DIR = Path.cwd()

DATA_DIR = BASE_DIR / "data"

DEFAULT_SQLITE_NAME = "events.db"
DEFAULT_JSON_NAME = "events.json"


# ----------------------------------------------------------------------
# PATH HELPERS
# ----------------------------------------------------------------------

def get_data_path(name: str) -> Path:
    """
    Return a path inside the data directory.

    Example:
        get_data_path("events.db")

    This function DOES NOT write files.
    It only guarantees the parent directory exists.
    """

    path = DATA_DIR / name
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def resolve_storage_path(path: Path | str | None, backend: str) -> Path:
    """
    Resolve the configured store location.

    Relative paths are anchored at the data directory; an empty value
    selects the backend's default file name.
    """

    if not path:
        default = DEFAULT_JSON_NAME if backend == "json" else DEFAULT_SQLITE_NAME
        return get_data_path(default)

    candidate = Path(path)
    if candidate.is_absolute():
        candidate.parent.mkdir(parents=True, exist_ok=True)
        return candidate
    return get_data_path(str(candidate))
