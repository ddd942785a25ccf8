"""
数据传输对象（DTO）- 应用层与表现层之间的数据传输
"""
from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_serializer

from core.config import settings

GALLERY_ID_PREFIX = "s3-"


class DTOBase(BaseModel):
    """Base DTO: unify datetime serialization to UTC-Z for all subclasses."""

    @model_serializer(mode="wrap")
    def _serialize_model(self, handler):  # type: ignore[override]
        data = handler(self)

        def convert(value):
            if isinstance(value, datetime):
                ts = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
                s = ts.astimezone(timezone.utc).isoformat()
                return s.replace("+00:00", "Z")
            if isinstance(value, list):
                return [convert(v) for v in value]
            if isinstance(value, tuple):
                return tuple(convert(v) for v in value)
            if isinstance(value, dict):
                return {k: convert(v) for k, v in value.items()}
            return value

        return convert(data)


class ImageListQueryDTO(DTOBase):
    """Filters for listing cached images."""

    order_by: str = Field(default="upload_date", description="排序字段")
    order: Literal["asc", "desc"] = Field(default="desc")
    limit: int = Field(default=settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE)
    offset: int = Field(default=0, ge=0)
    modified_after: Optional[datetime] = Field(default=None, description="仅返回此时间之后修改的图片（不含）")
    min_size: Optional[int] = Field(default=None, ge=0, description="宽和高都不小于该值")

    @field_validator("order", mode="before")
    @classmethod
    def _lower_order(cls, v):
        return v.lower() if isinstance(v, str) else v


class ImageDTO(DTOBase):
    """Cached image detail DTO."""

    id: int
    s3_key: str
    filename: str
    mime_type: str
    width: int
    height: int
    filesize: int
    title: str
    description: str
    alt_text: str
    upload_date: Optional[datetime]
    modified_date: Optional[datetime]
    hash: str
    hash_source: str
    used_in_posts: int
    last_synced: Optional[datetime]
    url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class GalleryImageDTO(DTOBase):
    """Image shaped like a gallery item; ids carry the ``s3-`` prefix."""

    id: str
    source: str = "s3"
    s3_key: str
    public_url: str
    thumbnail_url: str
    title: str
    description: str
    alt_text: str
    caption: str = ""
    mime_type: str
    width: int
    height: int
    filesize: int
    upload_date: Optional[datetime]
    modified_date: Optional[datetime]
    hash: str
    used_in_posts: int


class ImageUpdateDTO(DTOBase):
    """Editable image fields; unknown fields are rejected."""

    title: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    alt_text: Optional[str] = Field(default=None, max_length=500)
    used_in_posts: Optional[int] = Field(default=None, ge=0)

    model_config = ConfigDict(extra="forbid")

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class SyncResultDTO(DTOBase):
    """Outcome of one bucket reconciliation pass."""

    added_count: int = 0
    updated_count: int = 0
    removed_count: int = 0
    errors: list[str] = Field(default_factory=list)
    next_continuation_token: Optional[str] = None


class SyncRequestDTO(DTOBase):
    prune_missing: Optional[bool] = None
    continuation_token: Optional[str] = None
    max_pages: Optional[int] = Field(default=None, ge=1)


class ConnectionTestDTO(DTOBase):
    success: bool
    message: str


class StorageStatusDTO(DTOBase):
    enabled: bool
    configured: bool
    preferred: bool
    bucket: str
    endpoint: str
    path_prefix: str
    missing: list[str] = Field(default_factory=list)
    image_count: int = 0


def parse_gallery_id(value: str) -> Optional[int]:
    """``s3-12`` -> 12; returns None for non-S3 gallery ids."""
    if not value.startswith(GALLERY_ID_PREFIX):
        return None
    raw = value[len(GALLERY_ID_PREFIX):]
    return int(raw) if raw.isdigit() else None
