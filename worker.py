"""Reminder worker process.

Opens the store, starts the scheduler, reloads pending reminders and then
runs until SIGINT/SIGTERM. With --console USER_ID, lines typed on stdin are
handled as messages from that user, for trying things out locally.
"""

import argparse
import asyncio
import signal
import sys
from typing import Optional

from logger import logger
from reminders import (
    RecoveryError,
    ReminderScheduler,
    ReminderStore,
    handle_reminder_intent,
    reload_pending_reminders,
    send_whatsapp,
)
from reminders import config as reminder_config


async def _console_loop(user_id: str, store: ReminderStore, scheduler: ReminderScheduler, stop: asyncio.Event):
    """Feed stdin lines to the reminder handler until EOF or stop."""
    try:
        while not stop.is_set():
            try:
                line = await asyncio.to_thread(input, "> ")
            except EOFError:
                break
            if not line.strip():
                continue
            reply = await handle_reminder_intent(user_id, line, store, scheduler)
            print(reply)
    finally:
        stop.set()


async def main(console_user: Optional[str] = None) -> int:
    """Run the worker. Returns the process exit code."""
    logger.info(f"Starting reminder worker (timezone {reminder_config.DEFAULT_TIMEZONE})")

    store = ReminderStore()
    try:
        await store.init_schema()
    except Exception as e:
        logger.error(f"Cannot initialise reminder store: {e}")
        return 1

    scheduler = ReminderScheduler(store, send_whatsapp)
    scheduler.start()

    try:
        result = await reload_pending_reminders(store, scheduler)
    except RecoveryError as e:
        logger.error(f"Startup recovery failed: {e}")
        scheduler.shutdown()
        store.close()
        return 1

    logger.info(f"Worker ready: {len(result.scheduled)} reminders scheduled")

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows: Ctrl+C arrives as KeyboardInterrupt instead
            pass

    console_task = None
    if console_user:
        console_task = asyncio.create_task(_console_loop(console_user, store, scheduler, stop))

    try:
        await stop.wait()
    finally:
        logger.info("Shutting down reminder worker...")
        if console_task is not None and not console_task.done():
            console_task.cancel()
        scheduler.shutdown()
        store.close()

    return 0


def run():
    """Console script entry point."""
    parser = argparse.ArgumentParser(description="WhatsApp reminder worker")
    parser.add_argument(
        "--console",
        metavar="USER_ID",
        help="read messages from stdin as this WhatsApp user"
    )
    args = parser.parse_args()

    try:
        exit_code = asyncio.run(main(args.console))
    except KeyboardInterrupt:
        exit_code = 0
    sys.exit(exit_code)


if __name__ == "__main__":
    run()
