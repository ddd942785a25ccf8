"""Application-owned storage port abstraction (hexagonal architecture).

Defines the minimal methods needed by application use cases so that
the application layer does not depend on infrastructure details.
Implementations raise ``StorageOperationException`` for any bucket failure.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Protocol, runtime_checkable


@dataclass
class StorageInfo:
    enabled: bool
    configured: bool
    bucket: str
    endpoint: str
    path_prefix: str
    preferred: bool
    missing: list[str] = field(default_factory=list)


@dataclass
class UploadOutcome:
    key: str
    url: str
    size: int
    content_type: str


@dataclass
class RemoteObject:
    key: str
    size: int
    etag: str
    last_modified: Optional[datetime] = None


@dataclass
class ObjectPage:
    objects: list[RemoteObject]
    is_truncated: bool
    next_token: Optional[str] = None


@dataclass
class ConnectionStatus:
    success: bool
    message: str


@runtime_checkable
class StoragePort(Protocol):
    def info(self) -> StorageInfo: ...

    def public_url(self, key: str) -> str: ...

    async def upload(self, data: bytes, filename: str, content_type: str) -> UploadOutcome: ...

    async def delete(self, key: str) -> None: ...

    async def download(self, key: str) -> bytes: ...

    async def list_page(
        self,
        prefix: str = "",
        max_keys: int = 1000,
        continuation_token: Optional[str] = None,
    ) -> ObjectPage: ...

    async def test_connection(self) -> ConnectionStatus: ...
