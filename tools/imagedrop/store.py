"""Content-addressed image directory.

Every image lives at ``<root>/<md5-hex>.jpg``. The name depends only on the
bytes, so the same picture posted twice maps to one file.
"""

from __future__ import annotations

import hashlib
import logging
import os
import tempfile
from pathlib import Path
from typing import List, Union

logger = logging.getLogger(__name__)

IMAGE_EXTENSION = ".jpg"


class InvalidImageName(ValueError):
    """Raised for names that could escape the image directory."""


def image_name(data: bytes) -> str:
    """Return the storage name for a payload: ``<md5-hex>.jpg``."""
    return f"{hashlib.md5(data).hexdigest()}{IMAGE_EXTENSION}"


def validate_name(name: str) -> str:
    if not name or name in (".", ".."):
        raise InvalidImageName(f"Invalid image name: {name!r}")
    if "/" in name or "\\" in name or "\0" in name or ".." in name:
        raise InvalidImageName(f"Invalid image name: {name!r}")
    return name


class ImageStore:
    """Flat directory of stored images.

    Args:
        root: Directory to keep images in. Created (with parents) if missing.
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, name: str) -> Path:
        return self.root / validate_name(name)

    def exists(self, name: str) -> bool:
        try:
            return self.path_for(name).is_file()
        except InvalidImageName:
            return False

    def write(self, name: str, data: bytes) -> Path:
        """Write ``data`` under ``name``.

        The bytes land in a hidden temp file first and are renamed into
        place, so readers never observe a partial image.

        Raises:
            OSError: Disk or permission failure.
        """
        target = self.path_for(name)
        fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=".", suffix=".part")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_name, target)
        except OSError:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise
        return target

    def read(self, name: str) -> bytes:
        """Return the stored bytes.

        Raises:
            FileNotFoundError: No image with that name.
        """
        try:
            path = self.path_for(name)
        except InvalidImageName:
            raise FileNotFoundError(name)
        return path.read_bytes()

    def list(self) -> List[str]:
        """Snapshot of stored image names, unordered."""
        with os.scandir(self.root) as entries:
            return [
                entry.name
                for entry in entries
                if entry.is_file() and not entry.name.startswith(".")
            ]
