"""
Bot configuration loader.

Sources, lowest to highest precedence:
- built-in defaults
- shared/config/bot.json (optional)
- environment (a local .env file is honored via python-dotenv)

Design rules:
- Import-safe (no side effects)
- Invalid values fall back to defaults with a warning
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from shared.logging.logger import get_logger

log = get_logger("shared.config.bot")

_CONFIG_PATH = Path(__file__).parent / "bot.json"

TOKEN_ENV = "DISCORD_TOKEN"
BACKEND_ENV = "DAYSSINCE_STORAGE_BACKEND"
PATH_ENV = "DAYSSINCE_STORAGE_PATH"

STORAGE_BACKENDS = ("sqlite", "json")


@dataclass
class StorageConfig:
    backend: str = "sqlite"
    path: Optional[str] = None


@dataclass
class CommandConfig:
    sync_on_ready: bool = True


@dataclass
class BotConfig:
    storage: StorageConfig = field(default_factory=StorageConfig)
    commands: CommandConfig = field(default_factory=CommandConfig)
    token: Optional[str] = None


def _load_json(path: Path) -> Dict[str, Any]:
    if not path.exists():
        log.info(f"{path.name} not found at {path}; using defaults")
        return {}

    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
            return data if isinstance(data, dict) else {}
    except Exception as e:
        log.warning(f"Failed to load {path.name} ({e}); using defaults")
        return {}


def _normalize_backend(value: Any) -> str:
    if isinstance(value, str) and value.strip().lower() in STORAGE_BACKENDS:
        return value.strip().lower()
    log.warning(f"Unknown storage backend {value!r}; defaulting to sqlite")
    return StorageConfig.backend


def _load_storage(raw: Optional[Dict[str, Any]]) -> StorageConfig:
    if not isinstance(raw, dict):
        return StorageConfig()

    backend = StorageConfig.backend
    if "backend" in raw:
        backend = _normalize_backend(raw.get("backend"))

    path = raw.get("path")
    if path is not None and not isinstance(path, str):
        log.warning("storage.path must be a string; using default location")
        path = None

    return StorageConfig(backend=backend, path=path or None)


def _load_commands(raw: Optional[Dict[str, Any]]) -> CommandConfig:
    if not isinstance(raw, dict):
        return CommandConfig()

    sync_on_ready = raw.get("sync_on_ready", CommandConfig.sync_on_ready)
    if not isinstance(sync_on_ready, bool):
        log.warning("commands.sync_on_ready must be boolean; defaulting to true")
        sync_on_ready = CommandConfig.sync_on_ready

    return CommandConfig(sync_on_ready=sync_on_ready)


def _apply_env(config: BotConfig) -> BotConfig:
    token = os.getenv(TOKEN_ENV)
    if token:
        config.token = token

    backend = os.getenv(BACKEND_ENV)
    if backend:
        config.storage.backend = _normalize_backend(backend)

    path = os.getenv(PATH_ENV)
    if path:
        config.storage.path = path

    return config


def load_bot_config(
    raw: Optional[Dict[str, Any]] = None,
    *,
    use_env: bool = True,
) -> BotConfig:
    """
    Build the runtime configuration.

    Passing ``raw`` skips the file lookup (tests, validation script).
    """
    if use_env:
        load_dotenv()

    raw = raw if raw is not None else _load_json(_CONFIG_PATH)

    config = BotConfig(
        storage=_load_storage(raw.get("storage") if isinstance(raw, dict) else None),
        commands=_load_commands(raw.get("commands") if isinstance(raw, dict) else None),
    )

    if use_env:
        config = _apply_env(config)

    return config
