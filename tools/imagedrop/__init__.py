"""
imagedrop — Telegram group photo drop with a tiny media server

Collects photos posted to one Telegram group through a Bot API webhook,
stores each distinct image once, and serves the collection over HTTP.

Architecture:
    Telegram → MediaServer (POST /bot<token>) → TelegramBot → Ingestor → ImageStore
    HTTP client → MediaServer (GET /images, /random-image) → ImageStore

Components:
    - ImageStore: content-addressed directory of <md5>.jpg files
    - Ingestor: downloads a photo, hashes it, writes it once
    - TelegramBot: webhook-driven python-telegram-bot Application
    - MediaServer: aiohttp application for images, health and the webhook
    - LifecycleGuard: lock file plus explicit bot state

Usage:
    python -m imagedrop --log-level DEBUG
"""

__version__ = "0.1.0"

from .store import ImageStore, InvalidImageName, image_name
from .ingest import FetchError, IngestResult, Ingestor
from .lifecycle import BotState, LifecycleGuard, LockFile

__all__ = [
    "ImageStore",
    "InvalidImageName",
    "image_name",
    "Ingestor",
    "IngestResult",
    "FetchError",
    "LifecycleGuard",
    "LockFile",
    "BotState",
]
