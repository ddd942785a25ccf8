"""S3-compatible storage entry point.

No module-level client: callers build a ``StorageConfig`` from settings
and open an ``S3StorageClient`` for the duration of a request or task.
"""
from typing import Optional

import httpx

from core.config import S3StorageSettings, settings
from .config import PreferredStorage, StorageConfig
from .exceptions import (
    ConfigurationIncompleteError,
    DeleteFailedError,
    HttpStatusError,
    NotFoundError,
    ParseError,
    StorageError,
    TransportError,
    UploadFailedError,
)
from .models import (
    BucketObject,
    ConnectionTestResult,
    ListObjectsResult,
    ObjectMetadata,
    UploadResult,
)
from .providers.s3 import S3StorageClient
from .signing import SigV4Signer


def build_storage_config(s3: Optional[S3StorageSettings] = None) -> StorageConfig:
    """Snapshot the ``S3__*`` settings group into a ``StorageConfig``."""
    s = s3 or settings.s3
    return StorageConfig(
        endpoint=s.endpoint,
        bucket=s.bucket,
        access_key=s.access_key,
        secret_key=s.secret_key,
        region=s.region,
        public_url=s.public_url,
        path_prefix=s.path_prefix,
        enabled=s.enabled,
        preferred_storage=s.preferred_storage,
        timeout=s.timeout,
    )


def create_storage_client(
    config: Optional[StorageConfig] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> S3StorageClient:
    return S3StorageClient(config or build_storage_config(), http_client=http_client)


__all__ = [
    "build_storage_config",
    "create_storage_client",
    "StorageConfig",
    "PreferredStorage",
    "S3StorageClient",
    "SigV4Signer",
    "UploadResult",
    "BucketObject",
    "ObjectMetadata",
    "ListObjectsResult",
    "ConnectionTestResult",
    "StorageError",
    "ConfigurationIncompleteError",
    "TransportError",
    "HttpStatusError",
    "UploadFailedError",
    "DeleteFailedError",
    "NotFoundError",
    "ParseError",
]
