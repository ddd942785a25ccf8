"""Repository abstraction for cached S3 images."""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from .entity import ImageRecord

# Fields get_images may order by
ORDERABLE_FIELDS = ("upload_date", "modified_date", "filename", "title", "filesize", "id")


@dataclass(frozen=True)
class ImageQuery:
    """Filters accepted by ``S3ImageRepository.list``."""

    order_by: str = "upload_date"
    descending: bool = True
    limit: int = 100
    offset: int = 0
    modified_after: Optional[datetime] = None
    min_size: Optional[int] = None


class S3ImageRepository(ABC):
    """Contract for persisting and querying image records."""

    @abstractmethod
    async def create(self, image: ImageRecord) -> ImageRecord:
        ...

    @abstractmethod
    async def update(self, image: ImageRecord) -> ImageRecord:
        ...

    @abstractmethod
    async def delete(self, image_id: int) -> None:
        ...

    @abstractmethod
    async def delete_by_keys(self, keys: Iterable[str]) -> int:
        ...

    @abstractmethod
    async def get_by_id(self, image_id: int) -> Optional[ImageRecord]:
        ...

    @abstractmethod
    async def get_by_key(self, key: str) -> Optional[ImageRecord]:
        ...

    @abstractmethod
    async def list(self, query: ImageQuery) -> list[ImageRecord]:
        ...

    @abstractmethod
    async def count(self) -> int:
        ...

    @abstractmethod
    async def all_keys(self, prefix: str = "") -> set[str]:
        """Keys of all records, or only those under ``prefix/``."""
        ...
