"""
======================================================================
 DaysSince Runtime — Version v0.1.0 (Build 2026.10)
======================================================================
"""

"""
Discord runtime entrypoint.

This module launches the DaysSince bot as an independent process.
It owns:

- event loop creation
- configuration and event store construction
- orderly startup and shutdown
- logging scope
"""

import asyncio
import signal
import sys

from runtime.version import as_string
from shared.config.bot import load_bot_config
from shared.logging.logger import get_logger
from shared.storage.event_store import build_store
from services.discord.client import DiscordClient

log = get_logger("core.discord_app")


# ----------------------------------------------------------------------
# MAIN ASYNC ENTRYPOINT
# ----------------------------------------------------------------------

async def main(stop_event: asyncio.Event):
    log.info(f"{as_string()} booting")

    config = load_bot_config()
    store = build_store(config)
    client = DiscordClient(config=config, store=store)

    # --------------------------------------------------
    # START DISCORD RUNTIME
    # --------------------------------------------------
    client_task = asyncio.create_task(client.run())
    stop_task = asyncio.create_task(stop_event.wait())

    # --------------------------------------------------
    # BLOCK UNTIL SHUTDOWN SIGNAL OR CLIENT EXIT
    # --------------------------------------------------
    try:
        done, _ = await asyncio.wait(
            {client_task, stop_task},
            return_when=asyncio.FIRST_COMPLETED,
        )

        if client_task in done and client_task.exception():
            log.error(f"Discord client exited with error: {client_task.exception()}")

        log.info("Discord shutdown initiated")

    # --------------------------------------------------
    # ORDERLY SHUTDOWN
    # --------------------------------------------------
    finally:
        try:
            await client.shutdown()
        except Exception as e:
            log.warning(f"Discord client shutdown error ignored: {e}")

        for task in (client_task, stop_task):
            if not task.done():
                task.cancel()
        await asyncio.gather(client_task, stop_task, return_exceptions=True)

        store.close()

    log.info("Discord runtime stopped")


# ----------------------------------------------------------------------
# SIGNAL HANDLING (WINDOWS-SAFE)
# ----------------------------------------------------------------------

def _install_signal_handlers(
    loop: asyncio.AbstractEventLoop,
    stop_event: asyncio.Event,
):
    """
    Windows-safe Ctrl+C handler.
    Uses signal.signal + asyncio.Event to unwind cleanly.
    """

    def _handler(signum, frame):
        try:
            loop.call_soon_threadsafe(stop_event.set)
        except RuntimeError:
            stop_event.set()

    try:
        signal.signal(signal.SIGINT, _handler)
        signal.signal(signal.SIGTERM, _handler)
    except (ValueError, OSError) as e:
        log.warning(f"Signal handlers not installed: {e}")


# ----------------------------------------------------------------------
# ENTRYPOINT
# ----------------------------------------------------------------------

def run():
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    stop_event = asyncio.Event()

    _install_signal_handlers(loop, stop_event)

    try:
        loop.run_until_complete(main(stop_event))

    except KeyboardInterrupt:
        log.info("KeyboardInterrupt received — shutdown initiated")

    finally:
        # --------------------------------------------------
        # CANCEL REMAINING TASKS (CLEANLY)
        # --------------------------------------------------
        pending = [t for t in asyncio.all_tasks(loop) if not t.done()]
        for task in pending:
            task.cancel()

        if pending:
            loop.run_until_complete(
                asyncio.gather(*pending, return_exceptions=True)
            )

        # --------------------------------------------------
        # FINAL LOOP CLEANUP
        # --------------------------------------------------
        loop.run_until_complete(loop.shutdown_asyncgens())

        asyncio.set_event_loop(None)
        loop.close()


if __name__ == "__main__":
    run()
    sys.exit(0)
