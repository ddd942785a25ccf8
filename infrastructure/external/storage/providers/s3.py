"""S3-compatible object storage client (Cloudflare R2, MinIO, AWS S3)."""
import time
from datetime import datetime
from typing import Callable, Mapping, Optional

import httpx

from core.logging_config import get_logger
from ..config import StorageConfig
from ..exceptions import (
    ConfigurationIncompleteError,
    DeleteFailedError,
    HttpStatusError,
    NotFoundError,
    StorageError,
    TransportError,
    UploadFailedError,
)
from ..listing import parse_list_objects
from ..models import ConnectionTestResult, ListObjectsResult, ObjectMetadata, UploadResult
from ..signing import SigV4Signer, utc_now
from ..utils import full_key, public_url

logger = get_logger(__name__)

# Keep error bodies in exceptions/logs bounded
_MAX_ERROR_BODY = 2048


class S3StorageClient:
    """Object operations over signed raw HTTP requests.

    The client owns its ``httpx.AsyncClient`` unless one is injected,
    in which case the caller is responsible for closing it.
    """

    def __init__(
        self,
        config: StorageConfig,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.config = config
        self.signer = SigV4Signer(config, clock=clock)
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=config.timeout)

    async def __aenter__(self) -> "S3StorageClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    def full_key(self, filename: str) -> str:
        return full_key(self.config, filename)

    def public_url(self, key: str) -> str:
        return public_url(self.config, key)

    def _ensure_configured(self) -> None:
        missing = self.config.missing_fields()
        if missing:
            raise ConfigurationIncompleteError(missing)

    async def _request(
        self,
        method: str,
        key: str = "",
        body: Optional[bytes] = None,
        headers: Optional[Mapping[str, object]] = None,
        query: Optional[Mapping[str, object]] = None,
    ) -> httpx.Response:
        self._ensure_configured()
        signed = self.signer.sign(method, key, body, headers, query)

        start = time.perf_counter()
        try:
            response = await self._http.request(
                method,
                signed.url,
                content=body,
                headers=signed.headers,
            )
        except httpx.HTTPError as exc:
            logger.warning(
                "S3 request transport failure",
                method=method,
                key=key,
                error=str(exc),
            )
            raise TransportError(f"S3 {method} {key or '/'} failed: {exc}") from exc

        logger.debug(
            "S3 request",
            method=method,
            key=key,
            status=response.status_code,
            elapsed_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return response

    @staticmethod
    def _body(response: httpx.Response) -> str:
        return response.text[:_MAX_ERROR_BODY]

    async def upload(self, data: bytes, filename: str, content_type: str = "image/jpeg") -> UploadResult:
        """PUT ``data`` under the prefixed key for ``filename``."""
        key = self.full_key(filename)
        response = await self._request(
            "PUT",
            key,
            body=data,
            headers={"Content-Type": content_type, "Content-Length": str(len(data))},
        )
        if response.status_code not in (200, 201):
            logger.error("S3 upload rejected", key=key, status=response.status_code)
            raise UploadFailedError(response.status_code, self._body(response))

        logger.info("Uploaded to S3", key=key, size=len(data))
        return UploadResult(
            key=key,
            url=self.public_url(key),
            size=len(data),
            content_type=content_type,
        )

    async def delete(self, key: str) -> None:
        response = await self._request("DELETE", key)
        if response.status_code not in (200, 204):
            logger.error("S3 delete rejected", key=key, status=response.status_code)
            raise DeleteFailedError(response.status_code, self._body(response))
        logger.info("Deleted from S3", key=key)

    async def head_object(self, key: str) -> ObjectMetadata:
        response = await self._request("HEAD", key)
        if response.status_code != 200:
            raise NotFoundError(response.status_code, operation="head")

        length = response.headers.get("content-length", "0")
        return ObjectMetadata(
            content_type=response.headers.get("content-type") or "application/octet-stream",
            content_length=int(length) if length.isdigit() else 0,
            last_modified=response.headers.get("last-modified"),
            etag=response.headers.get("etag", "").strip('"'),
        )

    async def get_object(self, key: str) -> bytes:
        response = await self._request("GET", key)
        if response.status_code == 404:
            raise NotFoundError(404, self._body(response), operation="get")
        if response.status_code != 200:
            raise HttpStatusError(response.status_code, self._body(response), operation="get")
        return response.content

    async def list_objects(
        self,
        prefix: str = "",
        max_keys: int = 1000,
        continuation_token: Optional[str] = None,
    ) -> ListObjectsResult:
        """One ListObjectsV2 page under the configured path prefix."""
        query: dict[str, object] = {"list-type": "2", "max-keys": max_keys}

        search_prefix = self.config.path_prefix.strip().strip("/")
        if prefix:
            search_prefix = f"{search_prefix}/{prefix}" if search_prefix else prefix
        if search_prefix:
            query["prefix"] = search_prefix
        if continuation_token:
            query["continuation-token"] = continuation_token

        response = await self._request("GET", "", query=query)
        if response.status_code != 200:
            logger.warning("S3 list rejected", status=response.status_code)
            raise HttpStatusError(response.status_code, self._body(response), operation="list")
        return parse_list_objects(response.content)

    async def test_connection(self) -> ConnectionTestResult:
        missing = self.config.missing_fields()
        if missing:
            return ConnectionTestResult(
                success=False,
                message=f"S3 configuration is incomplete: missing {', '.join(missing)}",
            )
        try:
            await self.list_objects("", 1)
        except StorageError as exc:
            logger.warning("S3 connection test failed", error=str(exc))
            return ConnectionTestResult(success=False, message=str(exc))
        return ConnectionTestResult(success=True, message="Connection successful")
