"""Infrastructure adapter that implements the application StoragePort
by delegating to the S3 client and translating models and errors.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

from application.ports.storage import (
    ConnectionStatus,
    ObjectPage,
    RemoteObject,
    StorageInfo,
    StoragePort,
    UploadOutcome,
)
from domain.common.exceptions import StorageOperationException
from infrastructure.external.storage import S3StorageClient, StorageError


@contextmanager
def _translate(operation: str) -> Iterator[None]:
    try:
        yield
    except StorageError as exc:
        raise StorageOperationException(exc, operation=operation) from exc


class S3StoragePortAdapter(StoragePort):
    def __init__(self, client: S3StorageClient):
        self.client = client

    def info(self) -> StorageInfo:
        cfg = self.client.config
        missing = cfg.missing_fields()
        return StorageInfo(
            enabled=cfg.enabled,
            configured=not missing,
            bucket=cfg.bucket,
            endpoint=cfg.endpoint,
            path_prefix=cfg.path_prefix,
            preferred=cfg.is_preferred_storage,
            missing=missing,
        )

    def public_url(self, key: str) -> str:
        return self.client.public_url(key)

    async def upload(self, data: bytes, filename: str, content_type: str) -> UploadOutcome:
        with _translate("upload"):
            result = await self.client.upload(data, filename, content_type)
        return UploadOutcome(
            key=result.key,
            url=result.url,
            size=result.size,
            content_type=result.content_type,
        )

    async def delete(self, key: str) -> None:
        with _translate("delete"):
            await self.client.delete(key)

    async def download(self, key: str) -> bytes:
        with _translate("get"):
            return await self.client.get_object(key)

    async def list_page(
        self,
        prefix: str = "",
        max_keys: int = 1000,
        continuation_token: Optional[str] = None,
    ) -> ObjectPage:
        with _translate("list"):
            page = await self.client.list_objects(prefix, max_keys, continuation_token)
        return ObjectPage(
            objects=[
                RemoteObject(
                    key=obj.key,
                    size=obj.size,
                    etag=obj.etag,
                    last_modified=obj.last_modified,
                )
                for obj in page.objects
            ],
            is_truncated=page.is_truncated,
            next_token=page.next_continuation_token,
        )

    async def test_connection(self) -> ConnectionStatus:
        result = await self.client.test_connection()
        return ConnectionStatus(success=result.success, message=result.message)
