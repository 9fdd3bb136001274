"""TelegramBot - webhook-driven photo collector.

Runs a python-telegram-bot Application without an Updater: updates arrive
through the MediaServer webhook route and are queued with feed().
"""

import logging
from typing import Any, Dict, Optional, Sequence
from urllib.parse import urljoin

from telegram import PhotoSize, Update
from telegram.ext import (
    Application,
    ApplicationBuilder,
    ContextTypes,
    MessageHandler,
    filters,
)

from .config import Settings
from .ingest import Ingestor

logger = logging.getLogger(__name__)

FILE_API_BASE = "https://api.telegram.org/file/bot"


def largest_photo(photos: Optional[Sequence[PhotoSize]]) -> Optional[PhotoSize]:
    """Return the highest-resolution variant (Telegram lists them smallest first)."""
    if not photos:
        return None
    return photos[-1]


def build_file_url(token: str, file_path: str) -> str:
    """Absolute download URL for a getFile result path."""
    return urljoin(f"{FILE_API_BASE}{token}/", file_path)


class TelegramBot:
    """Collects photos from the configured group.

    Args:
        settings: Process settings (token, group id, webhook URL).
        ingestor: Ingestor receiving resolved download URLs.
    """

    def __init__(self, settings: Settings, ingestor: Ingestor):
        self.settings = settings
        self.token = settings.telegram_token
        self.group_id = str(settings.group_id)
        self.ingestor = ingestor
        self.app: Optional[Application] = None

    def build_application(self) -> Application:
        app = (
            ApplicationBuilder()
            .token(self.token)
            .updater(None)
            .concurrent_updates(True)
            .build()
        )
        app.add_handler(
            MessageHandler(filters.UpdateType.MESSAGE, self._on_message)
        )
        app.add_error_handler(self._on_error)
        return app

    # --- HANDLERS ---

    async def _on_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        message = update.effective_message
        if message is None:
            return

        chat_id = message.chat.id
        logger.info(f"Received message in chat {chat_id}")

        if str(chat_id) != self.group_id:
            logger.info(f"Message from unexpected chat: {chat_id}")
            return

        photo = largest_photo(message.photo)
        if photo is None:
            logger.warning("No photos found in the message.")
            return

        file_id = photo.file_id
        try:
            tg_file = await context.bot.get_file(file_id)
            url = build_file_url(self.token, tg_file.file_path)
            logger.info(f"Attempting to download image {tg_file.file_path}")
            await self.ingestor.ingest(url, file_id)
        except Exception as e:
            logger.error(
                f"Failed to download or save image: {e} - file_id: {file_id}",
                exc_info=True,
            )

    async def _on_error(self, update: object, context: ContextTypes.DEFAULT_TYPE):
        logger.error(f"Update handling error: {context.error}")

    # --- LIFECYCLE ---

    async def start(self) -> None:
        """Initialise the application, register the webhook, start processing."""
        self.app = self.build_application()
        try:
            await self.app.initialize()
            await self.app.bot.set_webhook(url=self.settings.webhook_url)
            await self.app.start()
        except Exception:
            await self._shutdown_app()
            raise
        logger.info(f"Webhook registered at {self.settings.webhook_base_url}")

    async def feed(self, payload: Dict[str, Any]) -> None:
        """Queue one webhook payload for processing."""
        if not self.app:
            logger.warning("TelegramBot not started, dropping update")
            return
        update = Update.de_json(payload, self.app.bot)
        await self.app.update_queue.put(update)

    async def stop(self) -> None:
        """Stop update processing and release network resources."""
        if self.app:
            if self.app.running:
                await self.app.stop()
            await self._shutdown_app()
            logger.info("TelegramBot stopped")
        await self.ingestor.close()

    async def _shutdown_app(self) -> None:
        if self.app is None:
            return
        try:
            await self.app.shutdown()
        except Exception as e:
            logger.error(f"Application shutdown error: {e}")
        self.app = None
