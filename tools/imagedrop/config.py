"""Runtime configuration.

Reads environment variables (after loading a .env file with python-dotenv)
into a frozen Settings object. Required: TELEGRAM_TOKEN, GROUP_ID, WEBHOOK_URL.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

REQUIRED_VARS = ("TELEGRAM_TOKEN", "GROUP_ID", "WEBHOOK_URL")

DEFAULT_IMAGES_DIR = "images"
DEFAULT_LOCK_FILE = "bot.lock"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 5000


class ConfigError(Exception):
    """Raised when required configuration is missing or malformed."""


@dataclass(frozen=True)
class Settings:
    """Validated process configuration.

    Attributes:
        telegram_token: Bot token from @BotFather.
        group_id: The only chat id whose photos are collected (compared as text).
        webhook_base_url: Public base URL Telegram delivers updates to.
        images_dir: Directory holding the stored images.
        lock_path: Single-instance marker file.
        host: HTTP bind address.
        port: HTTP port.
        event_log: Optional JSONL event log path.
    """

    telegram_token: str
    group_id: str
    webhook_base_url: str
    images_dir: Path = Path(DEFAULT_IMAGES_DIR)
    lock_path: Path = Path(DEFAULT_LOCK_FILE)
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    event_log: Optional[Path] = None

    @property
    def webhook_path(self) -> str:
        return f"/bot{self.telegram_token}"

    @property
    def webhook_url(self) -> str:
        return f"{self.webhook_base_url.rstrip('/')}{self.webhook_path}"


def _parse_port(raw: str) -> int:
    try:
        port = int(raw)
    except ValueError:
        raise ConfigError(f"PORT must be an integer, got {raw!r}")
    if not 0 < port < 65536:
        raise ConfigError(f"PORT out of range: {port}")
    return port


def load_settings(
    environ: Optional[Mapping[str, str]] = None,
    env_file: Optional[str] = None,
) -> Settings:
    """Build Settings from the environment.

    Args:
        environ: Mapping to read instead of os.environ. When given, no .env
                 file is loaded.
        env_file: Explicit .env path. Defaults to python-dotenv's lookup.

    Raises:
        ConfigError: A required variable is missing or a value is malformed.
    """
    if environ is None:
        load_dotenv(env_file, override=False)
        environ = os.environ

    missing = [name for name in REQUIRED_VARS if not environ.get(name, "").strip()]
    if missing:
        raise ConfigError(
            f"Missing required environment variables: {', '.join(missing)}"
        )

    event_log = environ.get("EVENT_LOG", "").strip()

    return Settings(
        telegram_token=environ["TELEGRAM_TOKEN"].strip(),
        group_id=environ["GROUP_ID"].strip(),
        webhook_base_url=environ["WEBHOOK_URL"].strip(),
        images_dir=Path(environ.get("IMAGES_DIR") or DEFAULT_IMAGES_DIR),
        lock_path=Path(environ.get("LOCK_FILE") or DEFAULT_LOCK_FILE),
        host=environ.get("HOST") or DEFAULT_HOST,
        port=_parse_port(environ.get("PORT") or str(DEFAULT_PORT)),
        event_log=Path(event_log) if event_log else None,
    )
