"""MediaServer - aiohttp application serving stored images.

Routes:
    GET  /images/{filename}  stored image bytes or 404
    GET  /random-image       302 to a random stored image, 404 when empty
    GET  /health             liveness probe
    POST /bot<token>         Telegram webhook delivery (only while the bot runs)
"""

import json
import logging
import random
from typing import Any, Awaitable, Callable, Dict

from aiohttp import web

from .lifecycle import LifecycleGuard
from .store import ImageStore, InvalidImageName

logger = logging.getLogger(__name__)

UpdateHandler = Callable[[Dict[str, Any]], Awaitable[None]]


class MediaServer:
    """HTTP surface over an ImageStore.

    Args:
        store: ImageStore to serve from.
        guard: LifecycleGuard; the webhook route answers only while the bot runs.
        on_update: Coroutine receiving decoded webhook payloads.
        webhook_path: Secret webhook path (``/bot<token>``).
        host: Bind address.
        port: Bind port.
    """

    def __init__(
        self,
        store: ImageStore,
        guard: LifecycleGuard,
        on_update: UpdateHandler,
        webhook_path: str,
        host: str = "0.0.0.0",
        port: int = 5000,
    ):
        self.store = store
        self.guard = guard
        self.on_update = on_update
        self.webhook_path = webhook_path
        self.host = host
        self.port = port
        self.runner = None
        self.site = None

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/images/{filename}", self.handle_image)
        app.router.add_get("/random-image", self.handle_random_image)
        app.router.add_get("/health", self.handle_health)
        app.router.add_post(self.webhook_path, self.handle_webhook)
        return app

    async def start(self) -> None:
        """Start the aiohttp site."""
        self.runner = web.AppRunner(self.build_app())
        await self.runner.setup()
        self.site = web.TCPSite(self.runner, self.host, self.port)
        await self.site.start()
        logger.info(f"Media server running on port {self.port}")

    async def stop(self) -> None:
        if self.site:
            await self.site.stop()
        if self.runner:
            await self.runner.cleanup()
        logger.info("Media server stopped")

    async def handle_image(self, request: web.Request) -> web.StreamResponse:
        filename = request.match_info["filename"]
        try:
            path = self.store.path_for(filename)
        except InvalidImageName:
            logger.warning(f"Rejected image name from {request.remote}: {filename!r}")
            return web.Response(status=404, text="Image not found")

        if not path.is_file():
            return web.Response(status=404, text="Image not found")
        return web.FileResponse(path)

    async def handle_random_image(self, request: web.Request) -> web.StreamResponse:
        try:
            images = self.store.list()
        except Exception as e:
            logger.error(f"Exception occurred while serving random image: {e}", exc_info=True)
            return web.Response(status=500, text="An error occurred")

        if not images:
            logger.error("No images found in the directory.")
            return web.Response(status=404, text="No images found")

        raise web.HTTPFound(f"/images/{random.choice(images)}")

    async def handle_health(self, request: web.Request) -> web.Response:
        return web.Response(text="OK")

    async def handle_webhook(self, request: web.Request) -> web.Response:
        if not self.guard.bot_running:
            raise web.HTTPNotFound()

        try:
            payload = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return web.Response(status=400, text="Malformed update")
        if not isinstance(payload, dict):
            return web.Response(status=400, text="Malformed update")

        try:
            await self.on_update(payload)
        except Exception as e:
            logger.error(f"Dropping webhook update {payload.get('update_id')}: {e}")
        return web.Response(text="OK")
