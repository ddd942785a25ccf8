"""Image dimension and mime detection with Pillow."""
from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from typing import Optional

from anyio import to_thread
from PIL import Image, UnidentifiedImageError

from core.logging_config import get_logger
from application.utils.storage import guess_content_type

logger = get_logger(__name__)

DEFAULT_MIME = "image/jpeg"


@dataclass
class ImageMetadata:
    width: int = 0
    height: int = 0
    mime_type: str = DEFAULT_MIME


def _read_from_file(path: str) -> tuple[int, int, Optional[str]]:
    with Image.open(path) as image:
        width, height = image.size
        return width, height, Image.MIME.get(image.format or "")


def _detect(data: bytes, suffix: str) -> tuple[int, int, Optional[str]]:
    # Pillow reads the payload from a temporary file
    fd, path = tempfile.mkstemp(suffix=suffix)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        return _read_from_file(path)
    finally:
        os.unlink(path)


async def extract_image_metadata(data: bytes, filename: str) -> ImageMetadata:
    """Width, height and mime type of an image payload.

    Unreadable payloads (SVG, truncated files) fall back to 0x0 and the
    mime type guessed from ``filename``.
    """
    fallback = guess_content_type(filename, default=DEFAULT_MIME)
    suffix = os.path.splitext(filename)[1]
    try:
        width, height, mime = await to_thread.run_sync(_detect, data, suffix)
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as exc:
        logger.debug("Image dimensions unavailable", filename=filename, error=str(exc))
        return ImageMetadata(mime_type=fallback)
    return ImageMetadata(width=width, height=height, mime_type=mime or fallback)
