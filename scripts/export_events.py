"""
======================================================================
 DaysSince Runtime — Version v0.1.0 (Build 2026.10)
======================================================================

Dump one guild's events as JSON for operators.

Usage:
    python -m scripts.export_events --guild 123456789012345678
    python -m scripts.export_events --guild 1234 --output events.json

The store location comes from shared/config/bot.json and the
DAYSSINCE_STORAGE_* environment overrides, exactly as the bot resolves it.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from shared.config.bot import load_bot_config
from shared.events.errors import EventError, NotFound
from shared.events.models import EventKey
from shared.storage.event_store import EventStore, build_store


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Export a guild's events as JSON")
    parser.add_argument(
        "--guild",
        required=True,
        help="Guild (community) id whose events are exported",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write to this file instead of stdout",
    )
    return parser.parse_args(argv)


def collect_events(store: EventStore, guild_id: str) -> List[Dict[str, Any]]:
    records: List[Dict[str, Any]] = []
    for name in store.list_community(guild_id):
        try:
            event = store.load(EventKey(community_id=guild_id, name=name))
        except NotFound:
            continue
        records.append({"name": name, **event.to_dict()})
    return records


def main(argv: Optional[Sequence[str]] = None, store: Optional[EventStore] = None) -> int:
    args = parse_args(argv)

    owned = store is None
    if store is None:
        store = build_store(load_bot_config())

    try:
        records = collect_events(store, args.guild)
    except EventError as e:
        print(f"Export failed: {e}", file=sys.stderr)
        return 1
    finally:
        if owned:
            store.close()

    payload = json.dumps({"guild_id": args.guild, "events": records}, indent=2)

    if args.output:
        args.output.write_text(payload + "\n", encoding="utf-8")
        print(f"Exported {len(records)} events to {args.output}")
    else:
        print(payload)

    return 0


if __name__ == "__main__":
    sys.exit(main())
