"""
======================================================================
 DaysSince Runtime — Version v0.1.0 (Build 2026.10)
======================================================================

Configuration validation script.

This script validates shared/config/bot.json against
minimal runtime expectations.

Design rules:
- No side effects on import
- No runtime startup
- Validation only (no mutation)
- Forward-compatible: unknown fields are ignored
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from shared.config.bot import STORAGE_BACKENDS


# ------------------------------------------------------------
# Paths
# ------------------------------------------------------------

ROOT = Path(__file__).resolve().parents[1]
CONFIG_PATH = ROOT / "shared" / "config" / "bot.json"


# ------------------------------------------------------------
# Helpers
# ------------------------------------------------------------

def _load_json(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}

    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except Exception as e:
        raise ValueError(f"{path.name}: invalid JSON ({e})") from e

    if not isinstance(data, dict):
        raise ValueError(f"{path.name}: root JSON value must be an object")
    return data


def _error(msg: str):
    print(f"[CONFIG ERROR] {msg}", file=sys.stderr)


# ------------------------------------------------------------
# Validators
# ------------------------------------------------------------

def validate_bot_config(data: Dict[str, Any]) -> List[str]:
    """
    Validate the bot.json payload.

    Expected (minimal) shape:
    {
        "storage": {"backend": "sqlite" | "json", "path": "<str>"},
        "commands": {"sync_on_ready": true | false}
    }

    Missing keys are allowed.
    Invalid types are rejected.
    """

    errors: List[str] = []

    storage = data.get("storage")
    if storage is not None:
        if not isinstance(storage, dict):
            errors.append("bot.json: 'storage' must be an object")
        else:
            backend = storage.get("backend")
            if backend is not None and backend not in STORAGE_BACKENDS:
                errors.append(
                    "bot.json: 'storage.backend' must be one of "
                    + ", ".join(STORAGE_BACKENDS)
                )
            path = storage.get("path")
            if path is not None and not isinstance(path, str):
                errors.append("bot.json: 'storage.path' must be a string")

    commands = data.get("commands")
    if commands is not None:
        if not isinstance(commands, dict):
            errors.append("bot.json: 'commands' must be an object")
        else:
            sync_on_ready = commands.get("sync_on_ready")
            if sync_on_ready is not None and not isinstance(sync_on_ready, bool):
                errors.append("bot.json: 'commands.sync_on_ready' must be a boolean")

    return errors


# ------------------------------------------------------------
# Entry point
# ------------------------------------------------------------

def main(path: Optional[Path] = None) -> int:
    target = path or CONFIG_PATH

    try:
        data = _load_json(target)
    except ValueError as e:
        _error(str(e))
        print("Configuration validation failed.", file=sys.stderr)
        return 1

    errors = validate_bot_config(data)
    for message in errors:
        _error(message)

    if errors:
        print("Configuration validation failed.", file=sys.stderr)
        return 1

    print("Configuration validation passed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
