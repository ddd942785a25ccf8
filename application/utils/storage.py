"""Application-level storage helpers to avoid infra coupling."""
from __future__ import annotations

import mimetypes
import posixpath
import re
import time
import unicodedata
from typing import Optional

# Extensions treated as images during bucket sync (lowercase, no dot)
IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif", "webp", "avif", "svg"})

_EXTRA_TYPES = {
    "webp": "image/webp",
    "avif": "image/avif",
    "svg": "image/svg+xml",
}


def key_extension(key: str) -> str:
    """Lowercase extension of the last key segment, without the dot."""
    _, ext = posixpath.splitext(posixpath.basename(key))
    return ext[1:].lower()


def is_image_key(key: str) -> bool:
    return key_extension(key) in IMAGE_EXTENSIONS


def key_basename(key: str) -> str:
    return posixpath.basename(key)


def title_from_key(key: str) -> str:
    """Filename of the key with its extension removed."""
    stem, _ = posixpath.splitext(posixpath.basename(key))
    return stem


def guess_content_type(filename: str, default: str = "application/octet-stream") -> str:
    # webp/avif/svg are missing from some platforms' mime tables
    ext = key_extension(filename)
    if ext in _EXTRA_TYPES:
        return _EXTRA_TYPES[ext]
    ctype, _ = mimetypes.guess_type(filename)
    return ctype or default


def slugify(value: str) -> str:
    value = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    value = re.sub(r"[^a-zA-Z0-9\s-]", "", value).strip().lower()
    return re.sub(r"[\s_-]+", "-", value).strip("-")


def build_upload_filename(title: str, ext: str, *, timestamp: Optional[int] = None) -> str:
    """``{slug}-{unix_ts}.{ext}``, ``image-{unix_ts}.{ext}`` for an empty slug."""
    ts = int(time.time()) if timestamp is None else timestamp
    slug = slugify(title or "")
    ext = ext.lstrip(".").lower() or "jpg"
    if not slug:
        return f"image-{ts}.{ext}"
    return f"{slug}-{ts}.{ext}"
