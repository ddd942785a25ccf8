"""Domain entity for an image cached from the S3 bucket."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from domain.common.exceptions import DomainValidationException

HASH_SOURCES = ("etag", "upload")

# Fields a caller may change through update_image
EDITABLE_FIELDS = frozenset({"title", "description", "alt_text", "used_in_posts"})


def _ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass
class ImageRecord:
    """Local metadata row for one image object."""

    id: Optional[int]
    s3_key: str
    filename: str
    mime_type: str = "image/jpeg"
    width: int = 0
    height: int = 0
    filesize: int = 0
    title: str = ""
    description: str = ""
    alt_text: str = ""
    upload_date: Optional[datetime] = None
    modified_date: Optional[datetime] = None
    hash: str = ""
    hash_source: str = "upload"
    used_in_posts: int = 0
    last_synced: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.hash_source not in HASH_SOURCES:
            raise DomainValidationException(
                f"Invalid hash source: {self.hash_source}",
                field="hash_source",
                details={"allowed": list(HASH_SOURCES)},
            )
        self.upload_date = _ensure_utc(self.upload_date)
        self.modified_date = _ensure_utc(self.modified_date)
        self.last_synced = _ensure_utc(self.last_synced)

    def _touch(self) -> None:
        self.modified_date = datetime.now(timezone.utc)

    def apply_changes(self, changes: dict[str, Any]) -> None:
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise DomainValidationException(
                "Fields are not editable",
                details={"fields": sorted(unknown), "allowed": sorted(EDITABLE_FIELDS)},
            )
        if not changes:
            raise DomainValidationException("No editable fields supplied")

        # Validate everything before touching the record
        values: dict[str, Any] = {}
        for name, value in changes.items():
            if name == "used_in_posts":
                values[name] = self._post_count(value)
            else:
                values[name] = "" if value is None else str(value)
        for name, value in values.items():
            setattr(self, name, value)
        self._touch()

    @staticmethod
    def _post_count(value: Any) -> int:
        if value is None or isinstance(value, bool):
            raise DomainValidationException("used_in_posts must be an integer", field="used_in_posts")
        try:
            count = int(value)
        except (TypeError, ValueError):
            raise DomainValidationException("used_in_posts must be an integer", field="used_in_posts")
        if count < 0:
            raise DomainValidationException("used_in_posts must be >= 0", field="used_in_posts")
        return count

    def refresh_from_object(
        self,
        *,
        filesize: int,
        width: int,
        height: int,
        mime_type: str,
        etag: str,
    ) -> None:
        """Adopt a new remote revision discovered by sync."""
        self.filesize = filesize
        self.width = width
        self.height = height
        self.mime_type = mime_type
        self.hash = etag
        self.hash_source = "etag"
        self.last_synced = datetime.now(timezone.utc)
        self._touch()

    def confirm_etag(self) -> None:
        """The stored hash matches the bucket ETag; mark it as such."""
        self.hash_source = "etag"
        self.last_synced = datetime.now(timezone.utc)

    def needs_refresh(self, etag: str) -> bool:
        return self.hash != etag
