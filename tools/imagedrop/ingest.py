"""Deduplicating ingestion: download, hash, write once."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import aiohttp

from .events import log_event
from .store import ImageStore, image_name

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Download failed (transport error or non-2xx response)."""


@dataclass
class IngestResult:
    """Outcome of one ingestion.

    Attributes:
        filename: Storage name derived from the content.
        stored: False when the image was already present.
        size: Payload size in bytes.
    """

    filename: str
    stored: bool
    size: int


class Ingestor:
    """Fetches images over HTTP and stores each distinct payload once.

    Args:
        store: Target ImageStore.
        timeout: Optional aiohttp timeout. Defaults to no timeout at all.
    """

    def __init__(
        self, store: ImageStore, timeout: Optional[aiohttp.ClientTimeout] = None
    ):
        self.store = store
        self.timeout = timeout or aiohttp.ClientTimeout(total=None)
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self._session

    async def fetch(self, url: str) -> bytes:
        session = self._get_session()
        try:
            async with session.get(url) as resp:
                resp.raise_for_status()
                return await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FetchError(str(e)) from e

    async def ingest(self, source_url: str, correlation_id: str) -> IngestResult:
        """Download ``source_url`` and store it unless identical bytes exist.

        Raises:
            FetchError: Download failed.
            OSError: Writing the image failed.
        """
        data = await self.fetch(source_url)
        name = image_name(data)

        if self.store.exists(name):
            logger.info(f"Image already exists: {name} (file_id={correlation_id})")
            log_event("image_duplicate", filename=name, file_id=correlation_id)
            return IngestResult(filename=name, stored=False, size=len(data))

        path = self.store.write(name, data)
        logger.info(f"Saved image to {path} ({len(data)} bytes, file_id={correlation_id})")
        log_event(
            "image_saved", filename=name, file_id=correlation_id, size=len(data)
        )
        return IngestResult(filename=name, stored=True, size=len(data))

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
