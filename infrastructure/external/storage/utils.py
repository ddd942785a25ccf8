"""Storage key and URL helpers."""
from .config import StorageConfig


def full_key(config: StorageConfig, filename: str) -> str:
    """Object key for a filename: ``prefix/filename`` or just ``filename``.

    Both parts are trimmed of whitespace and ``/`` so a key never starts
    or ends with a slash.
    """
    name = filename.strip().strip("/")
    prefix = config.path_prefix.strip().strip("/")
    if prefix:
        return f"{prefix}/{name}"
    return name


def public_url(config: StorageConfig, key: str) -> str:
    """Public URL of an object.

    Uses the configured public base URL when set, otherwise the
    path-style ``endpoint/bucket/key`` address.
    """
    if config.public_url:
        return f"{config.public_url}/{key}"
    return f"{config.endpoint.rstrip('/')}/{config.bucket}/{key}"
