#!/usr/bin/env python3
"""imagedrop gateway — process entry point.

Starts the media server, then tries to claim the lock file and register the
Telegram webhook. The HTTP server stays up even when another instance owns
the bot.

Usage:
    python -m imagedrop
    python -m imagedrop --env-file /etc/imagedrop.env --log-level DEBUG
    python -m imagedrop --check-config

Architecture:
    Telegram → MediaServer (webhook) → TelegramBot → Ingestor → ImageStore
"""

import argparse
import asyncio
import logging
import signal
import sys

from .bot import TelegramBot
from .config import ConfigError, Settings, load_settings
from .events import configure_event_log
from .ingest import Ingestor
from .lifecycle import LifecycleGuard, LockFile
from .server import MediaServer
from .store import ImageStore

logger = logging.getLogger("imagedrop.gateway")


async def run(settings: Settings):
    """Main coroutine: serve until SIGINT/SIGTERM.

    Args:
        settings: Validated Settings
    """
    configure_event_log(settings.event_log)

    store = ImageStore(settings.images_dir)
    ingestor = Ingestor(store)
    guard = LifecycleGuard(LockFile(settings.lock_path))
    bot = TelegramBot(settings, ingestor)
    server = MediaServer(
        store,
        guard,
        on_update=bot.feed,
        webhook_path=settings.webhook_path,
        host=settings.host,
        port=settings.port,
    )

    shutdown_event = asyncio.Event()

    def signal_handler(sig):
        logger.info(f"Shutdown signal received ({sig.name})")
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler, sig)

    try:
        await server.start()
        await guard.start_bot(bot)
        logger.info(f"imagedrop online — bot {guard.state.value}")

        await shutdown_event.wait()

    finally:
        logger.info("Shutting down...")
        await guard.shutdown(bot)
        await ingestor.close()
        await server.stop()
        logger.info("imagedrop offline")


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="imagedrop",
        description="Collect Telegram group photos and serve them over HTTP",
        usage="%(prog)s [options]",
    )
    parser.add_argument(
        "--env-file",
        "-e",
        default=None,
        help="Path to a .env file (default: search from the working directory)",
    )
    parser.add_argument(
        "--check-config",
        "-t",
        action="store_true",
        help="Validate configuration and exit without starting",
    )
    parser.add_argument(
        "--log-level",
        "-l",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        settings = load_settings(env_file=args.env_file)
    except ConfigError as e:
        print(f"Error: {e}")
        print("Set TELEGRAM_TOKEN, GROUP_ID and WEBHOOK_URL (or put them in .env)")
        return 1

    if args.check_config:
        print("imagedrop — configuration valid")
        print(f"  Group: {settings.group_id}")
        print(f"  Webhook base: {settings.webhook_base_url}")
        print(f"  Images dir: {settings.images_dir}")
        print(f"  Lock file: {settings.lock_path}")
        print(f"  Listen: {settings.host}:{settings.port}")
        return 0

    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
