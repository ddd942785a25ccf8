"""Storage data transfer objects."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class UploadResult(BaseModel):
    """Upload operation result."""
    key: str
    url: str
    size: int
    content_type: str


class ObjectMetadata(BaseModel):
    """Object metadata read from HEAD response headers."""
    content_type: str = "application/octet-stream"
    content_length: int = 0
    last_modified: Optional[str] = None  # raw Last-Modified header
    etag: str = ""


class BucketObject(BaseModel):
    """One <Contents> entry of a bucket listing."""
    key: str
    size: int = 0
    last_modified: Optional[datetime] = None
    etag: str = ""


class ListObjectsResult(BaseModel):
    """One page of a ListObjectsV2 response."""
    objects: list[BucketObject] = Field(default_factory=list)
    is_truncated: bool = False
    next_continuation_token: Optional[str] = None


class ConnectionTestResult(BaseModel):
    """Outcome of a connectivity probe against the bucket."""
    success: bool
    message: str
