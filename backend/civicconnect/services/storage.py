"""Object storage for report photos."""

import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, Optional

from civicconnect.core.exceptions import ValidationException

logger = logging.getLogger(__name__)

EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}


class ObjectStore(ABC):
    """Stores an uploaded image and returns its public URL."""

    @abstractmethod
    async def upload(self, data: bytes, content_type: str, filename: Optional[str] = None) -> str:
        raise NotImplementedError


class LocalObjectStore(ObjectStore):
    """
    Writes images to a local directory that the app serves under ``/media``.

    Filenames are random; the client's filename is only used for logging.
    """

    def __init__(
        self,
        root: str,
        base_url: str,
        max_bytes: int,
        allowed_types: Iterable[str] = tuple(EXTENSIONS),
    ):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")
        self.max_bytes = max_bytes
        self.allowed_types = frozenset(allowed_types)

    def check(self, data: bytes, content_type: Optional[str]) -> str:
        """Validate an upload, returning the file extension to store it under."""
        content_type = (content_type or "").split(";")[0].strip().lower()
        if content_type not in self.allowed_types or content_type not in EXTENSIONS:
            raise ValidationException(
                "Only image files are allowed",
                field="image",
                valid_values=sorted(self.allowed_types),
            )
        if not data:
            raise ValidationException("No file uploaded", field="image")
        if len(data) > self.max_bytes:
            raise ValidationException(
                f"Image exceeds the {self.max_bytes // (1024 * 1024)} MB limit",
                field="image",
            )
        return EXTENSIONS[content_type]

    def _write(self, name: str, data: bytes) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        (self.root / name).write_bytes(data)

    async def upload(self, data: bytes, content_type: str, filename: Optional[str] = None) -> str:
        extension = self.check(data, content_type)
        name = f"{uuid.uuid4().hex}.{extension}"

        await asyncio.to_thread(self._write, name, data)

        logger.info(f"Stored upload {filename or '<unnamed>'} as {name} ({len(data)} bytes)")
        return f"{self.base_url}/{name}"
