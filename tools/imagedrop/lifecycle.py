"""Single-instance guard and bot lifecycle state.

Only one process should own the webhook registration. The first instance
creates the lock file atomically; later instances see it and leave the bot
alone while still serving HTTP.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional, Protocol, Union

from .events import log_event

logger = logging.getLogger(__name__)


class BotState(Enum):
    INACTIVE = "inactive"
    RUNNING = "running"
    SKIPPED = "skipped"
    FAILED = "failed"


class ManagedBot(Protocol):
    async def start(self) -> None: ...

    async def stop(self) -> None: ...


class LockFile:
    """Advisory lock file created with O_CREAT | O_EXCL.

    The body records the owner's PID and creation time. Staleness is not
    detected: a crashed owner leaves the file behind.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.owned = False

    def acquire(self) -> bool:
        """Create the lock file. Returns False if it already exists."""
        try:
            fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return False
        stamp = datetime.now(timezone.utc).isoformat()
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(f"pid={os.getpid()}\ncreated={stamp}\n")
        self.owned = True
        return True

    def release(self) -> None:
        """Remove the lock file if this instance created it."""
        if not self.owned:
            return
        try:
            self.path.unlink()
        except FileNotFoundError:
            logger.warning(f"Lock file {self.path} already removed")
        self.owned = False

    def holder(self) -> Optional[str]:
        try:
            return self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None


class LifecycleGuard:
    """Owns the bot state and the lock file.

    Args:
        lock: LockFile gating webhook registration.
    """

    def __init__(self, lock: LockFile):
        self.lock = lock
        self.state = BotState.INACTIVE

    @property
    def bot_running(self) -> bool:
        return self.state is BotState.RUNNING

    async def start_bot(self, bot: ManagedBot) -> BotState:
        """Acquire the lock and start the bot.

        If the lock is already held, the bot is not started. If starting
        fails, the lock is rolled back and the state becomes FAILED.
        """
        if not self.lock.acquire():
            holder = self.lock.holder() or "unknown owner"
            logger.info(f"Bot is already running ({self.lock.path}: {holder})")
            log_event("bot_skipped", lock_file=str(self.lock.path))
            self.state = BotState.SKIPPED
            return self.state

        try:
            await bot.start()
        except Exception as e:
            logger.error(f"Failed to set webhook: {e}", exc_info=True)
            log_event("webhook_failed", error=str(e))
            self.lock.release()
            self.state = BotState.FAILED
            return self.state

        self.state = BotState.RUNNING
        logger.info("Telegram bot started with webhook")
        log_event("bot_started", lock_file=str(self.lock.path))
        return self.state

    async def shutdown(self, bot: ManagedBot) -> None:
        """Stop the bot if it is running and release the lock if owned."""
        if self.bot_running:
            try:
                await bot.stop()
            except Exception as e:
                logger.error(f"Bot stop error: {e}")
            log_event("bot_stopped")
        self.lock.release()
        self.state = BotState.INACTIVE
